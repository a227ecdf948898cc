"""Upload router for CSV / Excel trade histories."""

import json
import logging
from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, UploadFile, File, Form, HTTPException

from ..exceptions import MissingColumnsError, TaxCalculationError, TradeFileError
from ..parsers import TradeHistoryParser
from ..parsers.trade_history_parser import FIELD_SYNONYMS, REQUIRED_FIELDS
from ..services import USTaxCalculator
from .dependencies import resolve_bracket_table

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["upload"])


@router.get("/fields")
async def get_mappable_fields() -> list[dict]:
    """Target fields an uploaded column can be mapped to."""
    return [
        {"field": name, "required": name in REQUIRED_FIELDS, "synonyms": synonyms}
        for name, synonyms in FIELD_SYNONYMS.items()
    ]


@router.post("/trades")
async def upload_trade_history(
    file: UploadFile = File(...),
    column_mapping: Optional[str] = Form(None, description='JSON object, e.g. {"Symbol": "Ticker"}'),
    base_income: Optional[Decimal] = Form(None, description="Calculate tax right away when given"),
    tax_year: Optional[int] = Form(None),
    filing_status: Optional[str] = Form(None),
) -> dict:
    """
    Upload a CSV or Excel trade history.
    Maps columns onto trade fields, converts rows into trades and,
    when a base income is given, runs the tax calculation on them.
    """
    overrides = None
    if column_mapping:
        try:
            overrides = json.loads(column_mapping)
        except json.JSONDecodeError:
            raise HTTPException(status_code=400, detail="column_mapping must be a JSON object")
        if not isinstance(overrides, dict):
            raise HTTPException(status_code=400, detail="column_mapping must be a JSON object")

    content = await file.read()
    parser = TradeHistoryParser()

    try:
        parsed = parser.parse(content, file.filename or "", column_overrides=overrides)
    except MissingColumnsError as e:
        logger.info("Upload %s: %s", file.filename, e)
        raise HTTPException(
            status_code=400,
            detail={"message": str(e), "missing_fields": e.missing},
        )
    except TradeFileError as e:
        logger.warning("Upload %s failed: %s", file.filename, e)
        raise HTTPException(status_code=400, detail=str(e))

    response = {
        "success": True,
        "message": f"Successfully parsed {len(parsed.trades)} trades",
        "filename": parsed.filename,
        "headers": parsed.headers,
        "mapping": parsed.mapping,
        "total_rows": parsed.total_rows,
        "trades_parsed": len(parsed.trades),
        "skipped_rows": parsed.skipped_rows,
        "preview": parsed.preview,
        "trades": [
            {
                "row_number": t.row_number,
                "symbol": t.symbol,
                "purchase_price": float(t.purchase_price),
                "selling_price": float(t.selling_price),
                "shares_sold": float(t.shares_sold),
                "trading_fees": float(t.trading_fees),
                "buy_date": t.buy_date.isoformat() if t.buy_date else None,
                "sell_date": t.sell_date.isoformat() if t.sell_date else None,
                "holding_period": t.holding_period,
                "gain_loss": float(t.to_trade_record().gain_loss),
            }
            for t in parsed.trades
        ],
        "tax": None,
    }

    if base_income is not None:
        table = resolve_bracket_table(tax_year, filing_status)
        try:
            response["tax"] = USTaxCalculator(table).calculate(parsed.trade_records, base_income).to_dict()
        except TaxCalculationError as e:
            raise HTTPException(status_code=400, detail=str(e))

    return response
