"""
Trade History File Parser

Reads broker trade exports (CSV, XLSX, XLS) and maps arbitrary column
headers onto closed-trade records for the tax calculator.

Column mapping is heuristic: each header is lower-cased and stripped of
non-alphanumerics, then matched against a table of known synonyms (exact
or substring). Callers can override any mapping.

Holding period is counted in calendar months between buy and sell date.
"""

import io
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from ..exceptions import MissingColumnsError, TradeFileError
from ..services.us_tax_calculator import TradeRecord, holding_period_months

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".csv", ".xlsx", ".xls")

# Target field -> known header synonyms, in matching priority order
FIELD_SYNONYMS: dict[str, list[str]] = {
    "Symbol": ["symbol", "ticker", "stock", "security", "stocksymbol"],
    "Buy Price": ["buyprice", "purchaseprice", "boughtprice", "cost", "costprice"],
    "Sell Price": ["sellprice", "saleprice", "soldprice", "sellingprice"],
    "Shares Sold": ["sharessold", "quantity", "qty", "amount", "numshares", "shares", "sharesamount"],
    "Fee/Commissions": ["fee", "commission", "fees", "commissions", "tradingfee", "tradingfees", "expense"],
    "Buy Date": ["buydate", "purchasedate", "datebought", "acquisitiondate"],
    "Sell Date": ["selldate", "saledate", "datesold", "disposaldate"],
}

REQUIRED_FIELDS = ["Symbol", "Buy Price", "Sell Price", "Shares Sold", "Buy Date", "Sell Date"]
OPTIONAL_FIELDS = ["Fee/Commissions"]

PREVIEW_ROWS = 5


@dataclass
class ParsedTrade:
    """One row of an uploaded trade history."""
    row_number: int
    symbol: str
    purchase_price: Decimal
    selling_price: Decimal
    shares_sold: Decimal
    trading_fees: Decimal
    buy_date: Optional[date]
    sell_date: Optional[date]
    holding_period: int

    def to_trade_record(self) -> TradeRecord:
        return TradeRecord(
            symbol=self.symbol,
            purchase_price=self.purchase_price,
            selling_price=self.selling_price,
            shares_sold=self.shares_sold,
            trading_fees=self.trading_fees,
            holding_period=self.holding_period,
        )


@dataclass
class ParsedTradeFile:
    """Result of parsing an uploaded trade history."""
    filename: str
    headers: list[str]
    mapping: dict[str, Optional[str]]
    trades: list[ParsedTrade] = field(default_factory=list)
    preview: list[dict] = field(default_factory=list)
    total_rows: int = 0
    skipped_rows: list[int] = field(default_factory=list)

    @property
    def trade_records(self) -> list[TradeRecord]:
        return [t.to_trade_record() for t in self.trades]


def normalize_header(header: Any) -> str:
    """Lower-case a header and drop everything except letters and digits."""
    return re.sub(r"[^a-z0-9]", "", str(header).lower())


def auto_map_columns(headers: list[str]) -> dict[str, Optional[str]]:
    """
    Map target fields onto source headers by synonym.

    Headers are scanned in file order; the first header that matches a
    field wins and each header is used at most once.
    """
    mapping: dict[str, Optional[str]] = {target: None for target in FIELD_SYNONYMS}

    for header in headers:
        normalized = normalize_header(header)
        if not normalized:
            continue

        for target, synonyms in FIELD_SYNONYMS.items():
            if mapping[target] is not None:
                continue
            if normalized in synonyms or any(s in normalized for s in synonyms):
                mapping[target] = header
                break

    return mapping


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a trade date.

    Accepts date/datetime values (Excel cells), ISO strings (YYYY-MM-DD),
    US MM/DD/YYYY falling back to DD/MM/YYYY, and anything pandas can read.
    Two-digit years are taken as 20xx.
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    if "-" in text:
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
    elif "/" in text:
        try:
            parts = [int(p) for p in text.split("/")]
        except ValueError:
            return None
        if len(parts) != 3:
            return None
        first, second, year = parts
        if year < 100:
            year += 2000
        try:
            return date(year, first, second)
        except ValueError:
            try:
                return date(year, second, first)
            except ValueError:
                return None

    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def to_decimal(value: Any) -> Decimal:
    """Parse a numeric cell; blanks, garbage and non-finite values become 0."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return Decimal("0")
    if isinstance(value, (int, float, Decimal)):
        number = Decimal(str(value))
    else:
        text = str(value).strip().replace("$", "").replace(",", "")
        if text.startswith("(") and text.endswith(")"):
            text = "-" + text[1:-1]
        try:
            number = Decimal(text)
        except InvalidOperation:
            return Decimal("0")

    if not number.is_finite():
        return Decimal("0")
    return number


def _cell(row: pd.Series, column: Optional[str]) -> Any:
    if column is None:
        return None
    return row.get(column)


class TradeHistoryParser:
    """Parser for uploaded CSV / Excel trade histories."""

    def read_frame(self, content: bytes, filename: str) -> pd.DataFrame:
        """Load the uploaded file into a DataFrame."""
        extension = Path(filename).suffix.lower()
        if extension not in SUPPORTED_EXTENSIONS:
            raise TradeFileError(
                f"Unsupported file type '{extension or filename}'. "
                f"Upload one of: {', '.join(SUPPORTED_EXTENSIONS)}"
            )
        if not content:
            raise TradeFileError("Uploaded file is empty")

        try:
            if extension == ".csv":
                frame = pd.read_csv(io.BytesIO(content), skipinitialspace=True)
            else:
                frame = pd.read_excel(io.BytesIO(content), sheet_name=0)
        except Exception as e:
            raise TradeFileError(f"Could not read {filename}: {e}") from e

        frame = frame.dropna(how="all")
        if frame.empty:
            raise TradeFileError("No data rows found in file")

        frame.columns = [str(c).strip() for c in frame.columns]
        return frame

    def parse(
        self,
        content: bytes,
        filename: str,
        column_overrides: Optional[dict[str, str]] = None,
    ) -> ParsedTradeFile:
        """Read, map and convert an uploaded trade history."""
        frame = self.read_frame(content, filename)
        headers = list(frame.columns)

        mapping = auto_map_columns(headers)
        for target, source in (column_overrides or {}).items():
            if target not in mapping:
                raise TradeFileError(f"Unknown field '{target}'")
            if source not in headers:
                raise TradeFileError(f"Column '{source}' not found in file")
            mapping[target] = source

        missing = [f for f in REQUIRED_FIELDS if mapping.get(f) is None]
        if missing:
            raise MissingColumnsError(missing)

        result = ParsedTradeFile(
            filename=filename,
            headers=headers,
            mapping=mapping,
            total_rows=len(frame),
            preview=self._preview(frame),
        )

        for position, (_, row) in enumerate(frame.iterrows(), start=1):
            trade = self._parse_row(position, row, mapping)
            if trade is None:
                result.skipped_rows.append(position)
                continue
            result.trades.append(trade)

        if result.skipped_rows:
            logger.warning(
                "%s: skipped %d rows with missing symbol, prices or shares",
                filename, len(result.skipped_rows),
            )
        logger.info("%s: parsed %d trades from %d rows", filename, len(result.trades), result.total_rows)
        return result

    def _parse_row(
        self, position: int, row: pd.Series, mapping: dict[str, Optional[str]]
    ) -> Optional[ParsedTrade]:
        symbol_value = _cell(row, mapping["Symbol"])
        symbol = "" if symbol_value is None or pd.isna(symbol_value) else str(symbol_value).strip().upper()
        buy_price = to_decimal(_cell(row, mapping["Buy Price"]))
        sell_price = to_decimal(_cell(row, mapping["Sell Price"]))
        shares = to_decimal(_cell(row, mapping["Shares Sold"]))
        fees = to_decimal(_cell(row, mapping["Fee/Commissions"]))

        # Essential data must be present and non-zero
        if not symbol or not buy_price or not sell_price or not shares:
            return None

        raw_buy = _cell(row, mapping["Buy Date"])
        raw_sell = _cell(row, mapping["Sell Date"])
        buy_date = parse_date(raw_buy)
        sell_date = parse_date(raw_sell)
        if buy_date is None or sell_date is None:
            logger.warning("Row %d (%s): invalid date format %r / %r", position, symbol, raw_buy, raw_sell)

        return ParsedTrade(
            row_number=position,
            symbol=symbol,
            purchase_price=buy_price,
            selling_price=sell_price,
            shares_sold=shares,
            trading_fees=fees,
            buy_date=buy_date,
            sell_date=sell_date,
            holding_period=holding_period_months(buy_date, sell_date),
        )

    @staticmethod
    def _preview(frame: pd.DataFrame) -> list[dict]:
        # JSON round-trip turns numpy scalars and timestamps into plain values, non-finite floats into null
        return json.loads(
            frame.head(PREVIEW_ROWS).to_json(orient="records", date_format="iso"),
            parse_constant=lambda _: None,
        )
