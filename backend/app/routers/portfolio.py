"""Portfolio router for per-ticker holdings built from the journal."""

from collections import defaultdict
from decimal import Decimal
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import func

from ..models import get_db, Transaction, TransactionType
from ..services import match_journal
from .dependencies import get_user_id
from .transactions import transaction_to_dict

router = APIRouter(prefix="/portfolio", tags=["portfolio"])


@router.get("/holdings")
async def get_holdings(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
) -> list[dict]:
    """
    Journal grouped by ticker.

    Totals follow the journal: shares bought minus shares sold, money
    invested in buys, all fees. Open cost basis comes from FIFO matching.
    """
    transactions = db.query(Transaction).filter(
        Transaction.user_id == user_id
    ).order_by(Transaction.transaction_date, Transaction.id).all()

    grouped: dict[str, list[Transaction]] = defaultdict(list)
    for t in transactions:
        grouped[t.ticker].append(t)

    matched = match_journal(transactions)
    holdings = []

    for ticker in sorted(grouped):
        total_shares = Decimal("0")
        total_invested = Decimal("0")
        total_fees = Decimal("0")
        dividends = Decimal("0")

        for t in grouped[ticker]:
            total_fees += t.fee or 0
            if t.transaction_type == TransactionType.BUY:
                total_shares += t.shares
                total_invested += t.amount
            elif t.transaction_type == TransactionType.SELL:
                total_shares -= t.shares
            elif t.transaction_type == TransactionType.DIVIDEND:
                dividends += t.amount

        lots = matched.open_lots.get(ticker, [])
        open_cost = sum((lot.remaining_quantity * lot.unit_cost for lot in lots), Decimal("0"))
        open_shares = sum((lot.remaining_quantity for lot in lots), Decimal("0"))
        realized = sum(
            (r.gain_loss for r in matched.realized if r.ticker == ticker), Decimal("0")
        )

        holdings.append({
            "ticker": ticker,
            "summary": {
                "total_shares": float(total_shares),
                "current_holdings": float(max(total_shares, Decimal("0"))),
                "total_invested": float(total_invested),
                "total_fees": float(total_fees),
                "average_cost": float(open_cost / open_shares) if open_shares > 0 else 0,
                "open_cost_basis": float(open_cost),
                "realized_gain_loss": float(realized),
                "dividends": float(dividends),
            },
            "transactions": [transaction_to_dict(t) for t in grouped[ticker]],
        })

    return holdings


@router.get("/summary")
async def get_portfolio_summary(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
) -> dict:
    """Get journal summary statistics."""
    type_counts = db.query(
        Transaction.transaction_type,
        func.count(Transaction.id)
    ).filter(Transaction.user_id == user_id).group_by(Transaction.transaction_type).all()

    ticker_count = db.query(func.count(func.distinct(Transaction.ticker))).filter(
        Transaction.user_id == user_id
    ).scalar()

    return {
        "total_tickers": ticker_count or 0,
        "total_transactions": sum(c[1] for c in type_counts),
        "transactions_by_type": {c[0].value: c[1] for c in type_counts},
    }
