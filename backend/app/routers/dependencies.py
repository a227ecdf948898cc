"""Request helpers shared by the routers."""

from typing import Optional
from fastapi import Header, HTTPException

from ..config import settings
from ..exceptions import UnsupportedTaxYearError
from ..services.tax_brackets import BracketTable, get_bracket_table


async def get_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Journal owner, taken from the X-User-Id header."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


def resolve_bracket_table(tax_year: Optional[int], filing_status: Optional[str]) -> BracketTable:
    """Bracket table for the request, falling back to the configured defaults."""
    try:
        return get_bracket_table(
            tax_year or settings.default_tax_year,
            filing_status or settings.default_filing_status,
        )
    except UnsupportedTaxYearError as e:
        raise HTTPException(status_code=400, detail=str(e))
