from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import Literal, Optional


class TradeInput(BaseModel):
    symbol: str = ""
    purchase_price: Decimal = Decimal("0")
    selling_price: Decimal = Decimal("0")
    shares_sold: Decimal = Decimal("0")
    trading_fees: Decimal = Decimal("0")
    holding_period: int = Field(0, ge=0, description="Months held")


class TaxCalculationRequest(BaseModel):
    base_income: Decimal = Field(..., description="Taxable income excluding investment income")
    trades: list[TradeInput]
    tax_year: Optional[int] = None
    filing_status: Optional[str] = None


class TransactionCreate(BaseModel):
    ticker: str = Field(..., min_length=1, max_length=20)
    transaction_type: Literal["buy", "sell", "dividend"]
    transaction_date: date
    shares: Decimal = Field(..., gt=0)
    price: Decimal = Field(..., ge=0)
    fee: Decimal = Field(Decimal("0"), ge=0)
    notes: Optional[str] = None


class TransactionUpdate(BaseModel):
    ticker: Optional[str] = Field(None, min_length=1, max_length=20)
    transaction_type: Optional[Literal["buy", "sell", "dividend"]] = None
    transaction_date: Optional[date] = None
    shares: Optional[Decimal] = Field(None, gt=0)
    price: Optional[Decimal] = Field(None, ge=0)
    fee: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class TransactionBatchCreate(BaseModel):
    transactions: list[TransactionCreate]


class SuggestionsRequest(BaseModel):
    base_income: Decimal = Field(..., gt=0)
    current_prices: dict[str, Decimal]
    filing_status: Optional[str] = None

