"""Transaction journal router (per-user CRUD)."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, Query, HTTPException
from sqlalchemy.orm import Session

from ..models import get_db, Transaction, TransactionType
from ..schemas import TransactionBatchCreate, TransactionCreate, TransactionUpdate
from .dependencies import get_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions", tags=["transactions"])


def transaction_to_dict(t: Transaction) -> dict:
    return {
        "id": t.id,
        "ticker": t.ticker,
        "transaction_type": t.transaction_type.value,
        "transaction_date": t.transaction_date.isoformat(),
        "shares": float(t.shares),
        "price": float(t.price),
        "amount": float(t.amount),
        "fee": float(t.fee or 0),
        "notes": t.notes,
        "created_at": t.created_at.isoformat() if t.created_at else None,
        "updated_at": t.updated_at.isoformat() if t.updated_at else None,
    }


def _build_transaction(user_id: str, data: TransactionCreate) -> Transaction:
    return Transaction(
        user_id=user_id,
        ticker=data.ticker.strip().upper(),
        transaction_type=TransactionType(data.transaction_type),
        transaction_date=data.transaction_date,
        shares=data.shares,
        price=data.price,
        amount=(data.shares * data.price).quantize(Decimal("0.01")),
        fee=data.fee,
        notes=data.notes,
    )


def _get_owned(db: Session, user_id: str, transaction_id: int) -> Transaction:
    transaction = db.query(Transaction).filter(
        Transaction.id == transaction_id,
        Transaction.user_id == user_id
    ).first()
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction


@router.get("")
async def list_transactions(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    ticker: Optional[str] = Query(None, description="Filter by ticker"),
    transaction_type: Optional[str] = Query(None, description="buy, sell or dividend"),
    start_date: Optional[date] = Query(None, description="Start date"),
    end_date: Optional[date] = Query(None, description="End date"),
    limit: int = Query(100, le=1000),
    offset: int = Query(0)
) -> list[dict]:
    """Get the user's journal, newest first, with optional filters."""
    query = db.query(Transaction).filter(Transaction.user_id == user_id)

    if ticker:
        query = query.filter(Transaction.ticker == ticker.upper())

    if transaction_type:
        try:
            trans_type = TransactionType(transaction_type.lower())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown transaction type '{transaction_type}'")
        query = query.filter(Transaction.transaction_type == trans_type)

    if start_date:
        query = query.filter(Transaction.transaction_date >= start_date)

    if end_date:
        query = query.filter(Transaction.transaction_date <= end_date)

    transactions = query.order_by(
        Transaction.transaction_date.desc(), Transaction.id.desc()
    ).offset(offset).limit(limit).all()

    return [transaction_to_dict(t) for t in transactions]


@router.get("/{transaction_id}")
async def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
) -> dict:
    """Get a single transaction."""
    return transaction_to_dict(_get_owned(db, user_id, transaction_id))


@router.post("", status_code=201)
async def create_transaction(
    data: TransactionCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
) -> dict:
    """Create a new journal entry."""
    transaction = _build_transaction(user_id, data)
    db.add(transaction)
    db.commit()
    db.refresh(transaction)

    logger.info("User %s added %s %s", user_id, transaction.transaction_type.value, transaction.ticker)
    return {
        "success": True,
        "message": "Transaction created successfully",
        "transaction": transaction_to_dict(transaction)
    }


@router.post("/batch", status_code=201)
async def create_transactions_batch(
    data: TransactionBatchCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
) -> dict:
    """Create many journal entries at once (e.g. from an upload)."""
    if not data.transactions:
        raise HTTPException(status_code=400, detail="No valid transaction data found")

    try:
        created = [_build_transaction(user_id, item) for item in data.transactions]
        db.add_all(created)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("Batch import failed for user %s", user_id)
        raise HTTPException(status_code=500, detail=f"Error saving transactions: {str(e)}")

    logger.info("User %s imported %d transactions", user_id, len(created))
    return {
        "success": True,
        "message": "Transactions successfully saved",
        "count": len(created)
    }


@router.put("/{transaction_id}")
async def update_transaction(
    transaction_id: int,
    data: TransactionUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
) -> dict:
    """Update a transaction."""
    transaction = _get_owned(db, user_id, transaction_id)

    if data.ticker is not None:
        transaction.ticker = data.ticker.strip().upper()
    if data.transaction_type is not None:
        transaction.transaction_type = TransactionType(data.transaction_type)
    if data.transaction_date is not None:
        transaction.transaction_date = data.transaction_date
    if data.shares is not None:
        transaction.shares = data.shares
    if data.price is not None:
        transaction.price = data.price
    if data.fee is not None:
        transaction.fee = data.fee
    if data.notes is not None:
        transaction.notes = data.notes

    # Recalculate amount
    transaction.amount = (Decimal(transaction.shares) * Decimal(transaction.price)).quantize(Decimal("0.01"))

    db.commit()
    db.refresh(transaction)

    return {
        "success": True,
        "message": f"Transaction {transaction_id} updated successfully",
        "transaction": transaction_to_dict(transaction)
    }


@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
) -> dict:
    """Delete a transaction by ID."""
    transaction = _get_owned(db, user_id, transaction_id)

    db.delete(transaction)
    db.commit()

    return {
        "success": True,
        "message": f"Transaction {transaction_id} deleted successfully"
    }
