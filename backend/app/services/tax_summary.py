"""
Tax Summary from the Transaction Journal

Turns a user's buy / sell / dividend journal into realized trades and
yearly reports:
- Sells are matched FIFO against earlier buys of the same ticker
- Buy fees are spread per share over the lot, sell fees over the matched shares
- Each match becomes a RealizedTrade (one TradeRecord for the calculator)
- Yearly summary, monthly performance and tax-optimization suggestions
"""

import calendar
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Protocol

from .tax_brackets import BracketTable
from .us_tax_calculator import (
    TaxResult,
    TradeRecord,
    USTaxCalculator,
    first_long_term_date,
    holding_period_months,
    marginal_rate,
    progressive_tax,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
LONG_TERM_WINDOW_DAYS = 60


class JournalEntryLike(Protocol):
    ticker: str
    transaction_type: str
    transaction_date: date
    shares: Decimal
    price: Decimal
    fee: Optional[Decimal]


@dataclass
class JournalEntry:
    """Plain journal entry, same shape as the Transaction entity."""
    ticker: str
    transaction_type: str  # buy, sell, dividend
    transaction_date: date
    shares: Decimal
    price: Decimal
    fee: Decimal = ZERO


@dataclass
class OpenLot:
    """Shares bought and not yet sold."""
    ticker: str
    acquisition_date: date
    quantity: Decimal
    unit_cost: Decimal
    remaining_quantity: Decimal
    fee_per_share: Decimal = ZERO


@dataclass
class RealizedTrade:
    """A sell matched to one buy lot."""
    ticker: str
    buy_date: date
    sell_date: date
    buy_price: Decimal
    sell_price: Decimal
    shares: Decimal
    fees: Decimal

    @property
    def holding_months(self) -> int:
        return holding_period_months(self.buy_date, self.sell_date)

    @property
    def cost_basis(self) -> Decimal:
        return self.buy_price * self.shares

    @property
    def gain_loss(self) -> Decimal:
        return (self.sell_price - self.buy_price) * self.shares - self.fees

    def to_trade_record(self) -> TradeRecord:
        return TradeRecord(
            symbol=self.ticker,
            purchase_price=self.buy_price,
            selling_price=self.sell_price,
            shares_sold=self.shares,
            trading_fees=self.fees,
            holding_period=self.holding_months,
        )


@dataclass
class JournalMatch:
    """Result of replaying a journal."""
    realized: list[RealizedTrade] = field(default_factory=list)
    open_lots: dict[str, list[OpenLot]] = field(default_factory=dict)
    unmatched_sells: list[tuple[str, date, Decimal]] = field(default_factory=list)


def _fee(entry: JournalEntryLike) -> Decimal:
    return Decimal(entry.fee) if entry.fee is not None else ZERO


def match_journal(entries: Iterable[JournalEntryLike]) -> JournalMatch:
    """
    Replay journal entries in date order and FIFO-match sells to buys.

    Buys on the same date as a sell are available to that sell because
    buys sort before sells within a day.
    """
    order = {"buy": 0, "sell": 1, "dividend": 2}
    ordered = sorted(
        entries,
        key=lambda e: (e.transaction_date, order.get(_type(e), 3)),
    )

    lots: dict[str, list[OpenLot]] = defaultdict(list)
    result = JournalMatch()

    for entry in ordered:
        kind = _type(entry)
        ticker = entry.ticker.upper()
        shares = abs(Decimal(entry.shares))
        if shares <= 0:
            continue

        if kind == "buy":
            lots[ticker].append(OpenLot(
                ticker=ticker,
                acquisition_date=entry.transaction_date,
                quantity=shares,
                unit_cost=Decimal(entry.price),
                remaining_quantity=shares,
                fee_per_share=_fee(entry) / shares,
            ))

        elif kind == "sell":
            remaining = shares
            sell_fee_per_share = _fee(entry) / shares

            for lot in lots[ticker]:
                if remaining <= 0:
                    break
                if lot.remaining_quantity <= 0:
                    continue

                match_qty = min(remaining, lot.remaining_quantity)
                result.realized.append(RealizedTrade(
                    ticker=ticker,
                    buy_date=lot.acquisition_date,
                    sell_date=entry.transaction_date,
                    buy_price=lot.unit_cost,
                    sell_price=Decimal(entry.price),
                    shares=match_qty,
                    fees=(lot.fee_per_share + sell_fee_per_share) * match_qty,
                ))
                lot.remaining_quantity -= match_qty
                remaining -= match_qty

            if remaining > 0:
                logger.warning(
                    "Sell of %s %s on %s exceeds holdings by %s shares; excess ignored",
                    shares, ticker, entry.transaction_date, remaining,
                )
                result.unmatched_sells.append((ticker, entry.transaction_date, remaining))

    result.open_lots = {
        ticker: [lot for lot in ticker_lots if lot.remaining_quantity > 0]
        for ticker, ticker_lots in lots.items()
        if any(lot.remaining_quantity > 0 for lot in ticker_lots)
    }
    return result


def _type(entry: JournalEntryLike) -> str:
    kind = entry.transaction_type
    return getattr(kind, "value", kind)


@dataclass
class MonthlyTaxData:
    month: str
    gains: Decimal = ZERO
    taxes: Decimal = ZERO


@dataclass
class TaxSummary:
    """Yearly tax summary for the dashboard and reports."""
    tax_year: int
    tax_result: TaxResult
    realized_trades: list[RealizedTrade]
    monthly_data: list[MonthlyTaxData]
    dividends: Decimal = ZERO

    @property
    def total_gains(self) -> Decimal:
        return self.tax_result.short_term_gains + self.tax_result.long_term_gains

    @property
    def capital_gains_tax(self) -> Decimal:
        return self.tax_result.capital_gains_tax

    @property
    def tax_rate(self) -> Decimal:
        """Effective rate on net investment gains, in percent."""
        if self.total_gains <= 0:
            return ZERO
        return (self.capital_gains_tax / self.total_gains * 100).quantize(Decimal("0.01"))

    def to_dict(self) -> dict:
        result = self.tax_result
        return {
            "tax_year": self.tax_year,
            "short_term_gains": float(result.short_term_gains),
            "short_term_tax": float(result.short_term_tax),
            "long_term_gains": float(result.long_term_gains),
            "long_term_tax": float(result.long_term_tax),
            "niit_tax": float(result.niit_tax),
            "total_gains": float(self.total_gains),
            "capital_gains_tax": float(self.capital_gains_tax),
            "tax_rate": float(self.tax_rate),
            "dividends": float(self.dividends),
            "breakdown": result.to_dict(),
            "monthly_data": [
                {"month": m.month, "gains": float(m.gains), "taxes": float(m.taxes)}
                for m in self.monthly_data
            ],
            "realized_trades": [
                {
                    "ticker": t.ticker,
                    "buy_date": t.buy_date.isoformat(),
                    "sell_date": t.sell_date.isoformat(),
                    "buy_price": float(t.buy_price),
                    "sell_price": float(t.sell_price),
                    "shares": float(t.shares),
                    "fees": float(t.fees),
                    "holding_months": t.holding_months,
                    "term": "short" if t.holding_months < 12 else "long",
                    "gain_loss": float(t.gain_loss),
                }
                for t in self.realized_trades
            ],
        }


def build_tax_summary(
    entries: Iterable[JournalEntryLike],
    tax_year: int,
    base_income: Decimal,
    table: BracketTable,
) -> TaxSummary:
    """Calculate the tax summary for sells dated in `tax_year`."""
    entries = list(entries)
    matched = match_journal(entries)
    year_trades = [t for t in matched.realized if t.sell_date.year == tax_year]

    tax_result = USTaxCalculator(table).calculate(
        [t.to_trade_record() for t in year_trades], base_income
    )

    monthly = [MonthlyTaxData(month=calendar.month_name[m]) for m in range(1, 13)]
    positive_by_month = [ZERO] * 12
    for trade in year_trades:
        idx = trade.sell_date.month - 1
        monthly[idx].gains += trade.gain_loss
        if trade.gain_loss > 0:
            positive_by_month[idx] += trade.gain_loss

    # Spread the capital gains tax over months in proportion to their gains
    total_positive = sum(positive_by_month, ZERO)
    if total_positive > 0:
        for idx, gains in enumerate(positive_by_month):
            monthly[idx].taxes = (
                tax_result.capital_gains_tax * gains / total_positive
            ).quantize(Decimal("0.01"))

    dividends = sum(
        (abs(Decimal(e.shares)) * Decimal(e.price) for e in entries
         if _type(e) == "dividend" and e.transaction_date.year == tax_year),
        ZERO,
    )

    logger.info(
        "Tax summary %s: %d realized trades, capital gains tax %s",
        tax_year, len(year_trades), tax_result.capital_gains_tax,
    )
    return TaxSummary(
        tax_year=tax_year,
        tax_result=tax_result,
        realized_trades=year_trades,
        monthly_data=monthly,
        dividends=dividends,
    )


def monthly_performance(summary: TaxSummary, entries: Iterable[JournalEntryLike]) -> dict:
    """Per-month profit, tax, return and activity for the summary's year."""
    counts = [0] * 12
    for entry in entries:
        if entry.transaction_date.year == summary.tax_year:
            counts[entry.transaction_date.month - 1] += 1

    cost_by_month = [ZERO] * 12
    for trade in summary.realized_trades:
        cost_by_month[trade.sell_date.month - 1] += trade.cost_basis

    months = []
    for idx, data in enumerate(summary.monthly_data):
        cost = cost_by_month[idx]
        returns = (data.gains / cost * 100).quantize(Decimal("0.01")) if cost > 0 else ZERO
        months.append({
            "month": data.month,
            "profit": float(data.gains),
            "tax": float(data.taxes),
            "returns": float(returns),
            "transactions": counts[idx],
        })

    active = [m for m in months if m["transactions"] > 0 or m["profit"] != 0]
    total_cost = sum(cost_by_month, ZERO)
    total_profit = sum((m.gains for m in summary.monthly_data), ZERO)

    return {
        "year": summary.tax_year,
        "months": months,
        "total_profit": float(total_profit),
        "capital_gains_tax": float(summary.capital_gains_tax),
        "average_return": float((total_profit / total_cost * 100).quantize(Decimal("0.01"))) if total_cost > 0 else 0.0,
        "best_month": max(active, key=lambda m: m["profit"])["month"] if active else None,
        "worst_month": min(active, key=lambda m: m["profit"])["month"] if active else None,
    }


@dataclass
class TaxOptimizationSuggestion:
    type: str  # tax_loss_harvesting, long_term_holding
    title: str
    description: str
    ticker: str
    potential_savings: Decimal = ZERO
    days_to_hold: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "ticker": self.ticker,
            "potential_savings": float(self.potential_savings),
            "days_to_hold": self.days_to_hold,
        }


def optimization_suggestions(
    entries: Iterable[JournalEntryLike],
    current_prices: dict[str, Decimal],
    base_income: Decimal,
    table: BracketTable,
    as_of: Optional[date] = None,
) -> list[TaxOptimizationSuggestion]:
    """
    Suggest tax moves for open positions.

    - Tax-loss harvesting: open lots trading below cost
    - Long-term holding: profitable lots within 60 days of turning long-term
    """
    as_of = as_of or date.today()
    prices = {ticker.upper(): Decimal(str(price)) for ticker, price in current_prices.items()}
    matched = match_journal(entries)
    ordinary_rate = marginal_rate(base_income, table.ordinary_brackets)
    suggestions: list[TaxOptimizationSuggestion] = []

    for ticker, ticker_lots in sorted(matched.open_lots.items()):
        price = prices.get(ticker)
        if price is None:
            continue

        unrealized_loss = ZERO
        for lot in ticker_lots:
            gain = (price - lot.unit_cost) * lot.remaining_quantity
            if gain < 0:
                unrealized_loss += -gain
                continue

            long_term_date = first_long_term_date(lot.acquisition_date)
            days_left = (long_term_date - as_of).days
            if gain > 0 and 0 < days_left <= LONG_TERM_WINDOW_DAYS:
                short_term_tax = progressive_tax(gain, table.ordinary_brackets, start=base_income)
                long_term_tax = progressive_tax(gain, table.long_term_brackets, start=base_income)
                suggestions.append(TaxOptimizationSuggestion(
                    type="long_term_holding",
                    title=f"Hold {ticker} for {days_left} more days",
                    description=(
                        f"{lot.remaining_quantity} shares bought {lot.acquisition_date.isoformat()} "
                        f"become long-term on {long_term_date.isoformat()}"
                    ),
                    ticker=ticker,
                    potential_savings=(short_term_tax - long_term_tax).quantize(Decimal("0.01")),
                    days_to_hold=days_left,
                ))

        if unrealized_loss > 0:
            suggestions.append(TaxOptimizationSuggestion(
                type="tax_loss_harvesting",
                title=f"Harvest the loss on {ticker}",
                description=(
                    f"Selling at {price} realizes a {unrealized_loss.quantize(Decimal('0.01'))} loss "
                    "that offsets gains or up to $3,000 of income"
                ),
                ticker=ticker,
                potential_savings=(
                    min(unrealized_loss, table.income_loss_cap) * ordinary_rate
                ).quantize(Decimal("0.01")),
            ))

    return suggestions
