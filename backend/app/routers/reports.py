"""Reports router: yearly tax summary, monthly performance, suggestions."""

import logging
from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, Query, HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..exceptions import TaxCalculationError
from ..models import get_db, Transaction
from ..schemas import SuggestionsRequest
from ..services import (
    TaxSummary,
    build_tax_summary,
    export_tax_summary_csv,
    monthly_performance,
    optimization_suggestions,
)
from .dependencies import get_user_id, resolve_bracket_table

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


def _journal(db: Session, user_id: str) -> list[Transaction]:
    return db.query(Transaction).filter(
        Transaction.user_id == user_id
    ).order_by(Transaction.transaction_date, Transaction.id).all()


def _summary(
    db: Session,
    user_id: str,
    tax_year: int,
    base_income: Decimal,
    filing_status: Optional[str],
) -> tuple[TaxSummary, list[Transaction]]:
    table = resolve_bracket_table(tax_year, filing_status)
    journal = _journal(db, user_id)
    try:
        return build_tax_summary(journal, tax_year, base_income, table), journal
    except TaxCalculationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/tax-summary/{tax_year}")
async def get_tax_summary(
    tax_year: int,
    base_income: Decimal = Query(..., description="Taxable income excluding investment income"),
    filing_status: Optional[str] = Query(None, description="single or married_joint"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
) -> dict:
    """
    Yearly tax summary from the journal.

    Sells dated in the year are FIFO-matched to earlier buys and run
    through the tax calculator. Includes the monthly gains/taxes split.
    """
    summary, _ = _summary(db, user_id, tax_year, base_income, filing_status)
    return summary.to_dict()


@router.get("/tax-summary/{tax_year}/export")
async def export_tax_summary(
    tax_year: int,
    base_income: Decimal = Query(...),
    filing_status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
) -> Response:
    """Download the yearly tax summary as CSV."""
    summary, _ = _summary(db, user_id, tax_year, base_income, filing_status)
    return Response(
        content=export_tax_summary_csv(summary),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="tax-summary-{tax_year}.csv"'},
    )


@router.get("/monthly-performance/{tax_year}")
async def get_monthly_performance(
    tax_year: int,
    base_income: Decimal = Query(...),
    filing_status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
) -> dict:
    """Profit, tax, return and activity per month."""
    summary, journal = _summary(db, user_id, tax_year, base_income, filing_status)
    return monthly_performance(summary, journal)


@router.post("/suggestions/{tax_year}")
async def get_suggestions(
    tax_year: int,
    request: SuggestionsRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
) -> list[dict]:
    """Tax-loss harvesting and long-term holding suggestions for open positions."""
    table = resolve_bracket_table(tax_year, request.filing_status)
    suggestions = optimization_suggestions(
        _journal(db, user_id),
        request.current_prices,
        request.base_income,
        table,
    )
    logger.info("User %s: %d tax suggestions for %s", user_id, len(suggestions), tax_year)
    return [s.to_dict() for s in suggestions]
