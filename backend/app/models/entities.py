"""Database entity models for the Stock Tax Calculator."""

from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Numeric,
    Enum as SQLEnum, Text
)
from .database import Base


class TransactionType(str, Enum):
    """Journal entry types."""
    BUY = "buy"
    SELL = "sell"
    DIVIDEND = "dividend"


class Transaction(Base):
    """One entry in a user's transaction journal."""
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), nullable=False, index=True)

    ticker = Column(String(20), nullable=False, index=True)
    transaction_type = Column(SQLEnum(TransactionType), nullable=False)
    transaction_date = Column(Date, nullable=False, index=True)

    # Quantities and prices
    shares = Column(Numeric(18, 8), nullable=False)  # Support fractional shares
    price = Column(Numeric(18, 6), nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)  # shares * price
    fee = Column(Numeric(18, 2), default=0)

    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
