"""
U.S. Capital Gains Tax Calculator

Estimates federal tax on realized stock trades for one tax year:
- Short-term gains (held < 12 months) taxed at ordinary income rates
- Long-term gains (held 12+ months) taxed at 0% / 15% / 20%
- Loss netting order:
  1. Short-term gains
  2. Long-term gains
  3. Up to $3,000 against ordinary income
  4. Remainder carried forward to next year
- NIIT: 3.8% on investment income when base income exceeds the threshold

Gains are stacked on top of ordinary income, so each bracket walk starts
at the income level already reached. Buckets are computed at full
precision and only their totals are rounded to whole dollars.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Sequence

from ..exceptions import InvalidIncomeError
from .tax_brackets import BracketTable, TaxBracket, get_bracket_table

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
LONG_TERM_MONTHS = 12


@dataclass
class TradeRecord:
    """A closed position: shares bought and later sold."""
    symbol: str
    purchase_price: Decimal
    selling_price: Decimal
    shares_sold: Decimal
    trading_fees: Decimal = ZERO
    holding_period: int = 0  # months

    @property
    def gain_loss(self) -> Decimal:
        return (self.selling_price - self.purchase_price) * self.shares_sold - self.trading_fees

    @property
    def is_short_term(self) -> bool:
        return self.holding_period < LONG_TERM_MONTHS


@dataclass
class LossNetting:
    """How total losses were absorbed."""
    short_term_gains: Decimal
    long_term_gains: Decimal
    short_term_losses_applied: Decimal = ZERO
    long_term_losses_applied: Decimal = ZERO
    losses_applied_to_income: Decimal = ZERO
    remaining_loss_carryforward: Decimal = ZERO


@dataclass
class TaxResult:
    """Result of a tax calculation."""
    tax_year: int
    filing_status: str
    base_income: Decimal

    # Gains after netting
    short_term_gains: Decimal = ZERO
    long_term_gains: Decimal = ZERO
    total_losses: Decimal = ZERO

    # Netting
    short_term_losses_applied: Decimal = ZERO
    long_term_losses_applied: Decimal = ZERO
    losses_applied_to_income: Decimal = ZERO
    remaining_loss_carryforward: Decimal = ZERO

    adjusted_income: Decimal = ZERO

    # Taxes (whole dollars)
    ordinary_income_tax: Decimal = ZERO
    short_term_tax: Decimal = ZERO
    long_term_tax: Decimal = ZERO
    niit_tax: Decimal = ZERO
    capital_gains_tax: Decimal = ZERO
    total_tax: Decimal = ZERO

    trades_used: int = 0
    trades_skipped: int = 0

    def to_dict(self) -> dict:
        return {
            "tax_year": self.tax_year,
            "filing_status": self.filing_status,
            "base_income": float(self.base_income),
            "short_term_gains": float(self.short_term_gains),
            "long_term_gains": float(self.long_term_gains),
            "total_losses": float(self.total_losses),
            "short_term_losses_applied": float(self.short_term_losses_applied),
            "long_term_losses_applied": float(self.long_term_losses_applied),
            "losses_applied_to_income": float(self.losses_applied_to_income),
            "remaining_loss_carryforward": float(self.remaining_loss_carryforward),
            "adjusted_income": float(self.adjusted_income),
            "ordinary_income_tax": float(self.ordinary_income_tax),
            "short_term_tax": float(self.short_term_tax),
            "long_term_tax": float(self.long_term_tax),
            "niit_tax": float(self.niit_tax),
            "capital_gains_tax": float(self.capital_gains_tax),
            "total_tax": float(self.total_tax),
            "trades_used": self.trades_used,
            "trades_skipped": self.trades_skipped,
        }


def holding_period_months(buy_date: Optional[date], sell_date: Optional[date]) -> int:
    """Whole calendar months between buy and sell (day of month ignored)."""
    if buy_date is None or sell_date is None:
        return 0
    return (sell_date.year - buy_date.year) * 12 + (sell_date.month - buy_date.month)


def first_long_term_date(buy_date: date) -> date:
    """First sell date at which holding_period_months() reaches the long-term threshold."""
    months = buy_date.month - 1 + LONG_TERM_MONTHS
    return date(buy_date.year + months // 12, months % 12 + 1, 1)


def round_dollars(amount: Decimal) -> Decimal:
    """Round to the nearest whole dollar, halves away from zero."""
    return amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def progressive_tax(
    amount: Decimal,
    brackets: Sequence[TaxBracket],
    start: Decimal = ZERO,
) -> Decimal:
    """
    Tax the slice [start, start + amount) of a progressive schedule.

    Each bracket covers [threshold, next threshold); the top bracket is
    open-ended. The result is not rounded.
    """
    if amount <= 0:
        return ZERO

    end = start + amount
    tax = ZERO

    for i, bracket in enumerate(brackets):
        lower = max(start, bracket.threshold)
        upper = end if i == len(brackets) - 1 else min(end, brackets[i + 1].threshold)
        if upper > lower:
            tax += (upper - lower) * bracket.rate

    return tax


def marginal_rate(income: Decimal, brackets: Sequence[TaxBracket]) -> Decimal:
    """Rate of the bracket that the next dollar above `income` falls into."""
    rate = brackets[0].rate
    for bracket in brackets:
        if income >= bracket.threshold:
            rate = bracket.rate
    return rate


def net_losses(
    short_term_gains: Decimal,
    long_term_gains: Decimal,
    total_losses: Decimal,
    income_loss_cap: Decimal = Decimal("3000"),
) -> LossNetting:
    """Absorb losses against short-term, then long-term gains, then income."""
    netting = LossNetting(short_term_gains=short_term_gains, long_term_gains=long_term_gains)
    remaining = total_losses

    if remaining > 0 and netting.short_term_gains > 0:
        netting.short_term_losses_applied = min(remaining, netting.short_term_gains)
        netting.short_term_gains -= netting.short_term_losses_applied
        remaining -= netting.short_term_losses_applied

    if remaining > 0 and netting.long_term_gains > 0:
        netting.long_term_losses_applied = min(remaining, netting.long_term_gains)
        netting.long_term_gains -= netting.long_term_losses_applied
        remaining -= netting.long_term_losses_applied

    if remaining > 0:
        netting.losses_applied_to_income = min(remaining, income_loss_cap)
        remaining -= netting.losses_applied_to_income

    netting.remaining_loss_carryforward = max(ZERO, remaining)
    return netting


class USTaxCalculator:
    """
    Calculator for U.S. federal tax on realized stock trades.

    The bracket table is injected, so one instance covers exactly one
    tax year and filing status.
    """

    def __init__(self, table: Optional[BracketTable] = None):
        self.table = table or get_bracket_table(2024, "single")

    def aggregate(self, trades: Iterable[TradeRecord]) -> tuple[Decimal, Decimal, Decimal, int, int]:
        """
        Split trades into short-term gains, long-term gains and total losses.

        Trades without a symbol or with non-positive shares are skipped.
        """
        short_term_gains = ZERO
        long_term_gains = ZERO
        total_losses = ZERO
        used = 0
        skipped = 0

        for trade in trades:
            if not trade.symbol or trade.shares_sold <= 0:
                skipped += 1
                continue

            used += 1
            gain_loss = trade.gain_loss
            logger.debug(
                "Trade %s: %s shares, %s -> %s, fees %s, %s months, gain/loss %s",
                trade.symbol, trade.shares_sold, trade.purchase_price,
                trade.selling_price, trade.trading_fees, trade.holding_period, gain_loss,
            )

            if gain_loss > 0:
                if trade.is_short_term:
                    short_term_gains += gain_loss
                else:
                    long_term_gains += gain_loss
            elif gain_loss < 0:
                total_losses += abs(gain_loss)

        return short_term_gains, long_term_gains, total_losses, used, skipped

    def calculate(self, trades: Iterable[TradeRecord], base_income: Decimal) -> TaxResult:
        """Calculate the tax breakdown for a set of trades on top of base income."""
        base_income = Decimal(str(base_income))
        if base_income <= 0:
            raise InvalidIncomeError("Please enter a valid total taxable income")

        table = self.table
        result = TaxResult(
            tax_year=table.tax_year,
            filing_status=table.filing_status,
            base_income=base_income,
        )

        # 1. Gains and losses
        short_term, long_term, losses, used, skipped = self.aggregate(trades)
        result.total_losses = losses
        result.trades_used = used
        result.trades_skipped = skipped

        # 2. Loss netting
        netting = net_losses(short_term, long_term, losses, table.income_loss_cap)
        result.short_term_gains = netting.short_term_gains
        result.long_term_gains = netting.long_term_gains
        result.short_term_losses_applied = netting.short_term_losses_applied
        result.long_term_losses_applied = netting.long_term_losses_applied
        result.losses_applied_to_income = netting.losses_applied_to_income
        result.remaining_loss_carryforward = netting.remaining_loss_carryforward
        logger.debug(
            "Netting: ST applied %s, LT applied %s, income applied %s, carryforward %s",
            netting.short_term_losses_applied, netting.long_term_losses_applied,
            netting.losses_applied_to_income, netting.remaining_loss_carryforward,
        )

        # 3. Ordinary income
        result.adjusted_income = max(ZERO, base_income - result.losses_applied_to_income)
        result.ordinary_income_tax = round_dollars(
            progressive_tax(result.adjusted_income, table.ordinary_brackets)
        )

        # 4. Short-term gains stacked on adjusted income
        result.short_term_tax = round_dollars(
            progressive_tax(result.short_term_gains, table.ordinary_brackets, start=result.adjusted_income)
        )

        # 5. Long-term gains stacked on income plus short-term gains
        result.long_term_tax = round_dollars(
            progressive_tax(
                result.long_term_gains,
                table.long_term_brackets,
                start=base_income + result.short_term_gains,
            )
        )

        # 6. NIIT
        investment_income = result.short_term_gains + result.long_term_gains
        if investment_income > 0 and base_income > table.niit_threshold:
            result.niit_tax = round_dollars(investment_income * table.niit_rate)

        # 7. Totals
        result.capital_gains_tax = result.short_term_tax + result.long_term_tax + result.niit_tax
        result.total_tax = result.ordinary_income_tax + result.capital_gains_tax

        logger.info(
            "Tax %s/%s on %d trades: ordinary %s, short-term %s, long-term %s, NIIT %s, total %s",
            table.tax_year, table.filing_status, used, result.ordinary_income_tax,
            result.short_term_tax, result.long_term_tax, result.niit_tax, result.total_tax,
        )
        return result


def calculate_stock_tax(
    trades: Iterable[TradeRecord],
    base_income: Decimal,
    tax_year: int = 2024,
    filing_status: str = "single",
) -> TaxResult:
    """Convenience wrapper: look up the bracket table and calculate."""
    return USTaxCalculator(get_bracket_table(tax_year, filing_status)).calculate(trades, base_income)
