"""CSV export of yearly tax summaries."""

import csv
import io
from decimal import Decimal

from .tax_summary import TaxSummary


def _format_decimal(value: Decimal) -> str:
    return f"{value:.2f}"


def export_tax_summary_csv(summary: TaxSummary) -> str:
    """
    Render a tax summary as CSV text.

    Three blocks separated by blank lines: the tax breakdown, the monthly
    gains/taxes and the realized trades (Form 8949 style).
    """
    result = summary.tax_result
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    writer.writerow(["Tax Summary", summary.tax_year, result.filing_status])
    writer.writerow(["Item", "Amount"])
    for label, value in [
        ("Base income", result.base_income),
        ("Short-term gains", result.short_term_gains),
        ("Long-term gains", result.long_term_gains),
        ("Total losses", result.total_losses),
        ("Losses applied to short-term", result.short_term_losses_applied),
        ("Losses applied to long-term", result.long_term_losses_applied),
        ("Losses applied to income", result.losses_applied_to_income),
        ("Loss carryforward", result.remaining_loss_carryforward),
        ("Ordinary income tax", result.ordinary_income_tax),
        ("Short-term tax", result.short_term_tax),
        ("Long-term tax", result.long_term_tax),
        ("NIIT", result.niit_tax),
        ("Capital gains tax", result.capital_gains_tax),
        ("Total tax", result.total_tax),
    ]:
        writer.writerow([label, _format_decimal(value)])

    writer.writerow([])
    writer.writerow(["Month", "Gains", "Taxes"])
    for month in summary.monthly_data:
        writer.writerow([month.month, _format_decimal(month.gains), _format_decimal(month.taxes)])

    writer.writerow([])
    writer.writerow([
        "Ticker", "Date acquired", "Date sold", "Shares",
        "Proceeds", "Cost basis", "Fees", "Term", "Gain/Loss",
    ])
    for trade in summary.realized_trades:
        writer.writerow([
            trade.ticker,
            trade.buy_date.isoformat(),
            trade.sell_date.isoformat(),
            f"{trade.shares.normalize():f}",
            _format_decimal(trade.sell_price * trade.shares),
            _format_decimal(trade.cost_basis),
            _format_decimal(trade.fees),
            "Short" if trade.holding_months < 12 else "Long",
            _format_decimal(trade.gain_loss),
        ])

    return buffer.getvalue()
