"""Tax calculation router."""

import logging
from fastapi import APIRouter, HTTPException

from ..exceptions import TaxCalculationError, UnsupportedTaxYearError
from ..schemas import TaxCalculationRequest
from ..services import USTaxCalculator, TradeRecord, available_tables, get_bracket_table
from .dependencies import resolve_bracket_table

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tax", tags=["tax"])


@router.post("/calculate")
async def calculate_tax(request: TaxCalculationRequest) -> dict:
    """
    Estimate U.S. federal tax on a list of closed trades.

    Returns breakdown of:
    - Short-term / long-term gains after loss netting
    - Losses applied to gains and up to $3,000 of income, carryforward
    - Ordinary income tax, short-term tax, long-term tax, NIIT
    """
    table = resolve_bracket_table(request.tax_year, request.filing_status)

    trades = [
        TradeRecord(
            symbol=t.symbol.strip().upper(),
            purchase_price=t.purchase_price,
            selling_price=t.selling_price,
            shares_sold=t.shares_sold,
            trading_fees=t.trading_fees,
            holding_period=t.holding_period,
        )
        for t in request.trades
    ]

    try:
        result = USTaxCalculator(table).calculate(trades, request.base_income)
    except TaxCalculationError as e:
        logger.warning("Rejected tax calculation: %s", e)
        raise HTTPException(status_code=400, detail=str(e))

    response = result.to_dict()
    response["trades"] = [
        {
            "symbol": t.symbol,
            "gain_loss": float(t.gain_loss),
            "term": "short" if t.is_short_term else "long",
        }
        for t in trades
        if t.symbol and t.shares_sold > 0
    ]
    return response


@router.get("/brackets")
async def list_bracket_tables() -> list[dict]:
    """Tax years and filing statuses with bracket tables."""
    return available_tables()


@router.get("/brackets/{tax_year}/{filing_status}")
async def get_brackets(tax_year: int, filing_status: str) -> dict:
    """Ordinary and long-term bracket table for one year and filing status."""
    try:
        return get_bracket_table(tax_year, filing_status).to_dict()
    except UnsupportedTaxYearError as e:
        raise HTTPException(status_code=404, detail=str(e))
