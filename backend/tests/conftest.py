"""
Pytest configuration and fixtures.
"""
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

# Make the "app" package importable when running from the repository root
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.services.tax_brackets import get_bracket_table
from app.services.us_tax_calculator import TradeRecord
from app.services.tax_summary import JournalEntry


@pytest.fixture
def table_2024_single():
    """2024 single-filer brackets."""
    return get_bracket_table(2024, "single")


@pytest.fixture
def short_term_winner():
    """$5,000 short-term gain."""
    return TradeRecord(
        symbol="AAPL",
        purchase_price=Decimal("100"),
        selling_price=Decimal("150"),
        shares_sold=Decimal("100"),
        trading_fees=Decimal("0"),
        holding_period=6,
    )


@pytest.fixture
def long_term_loser():
    """$2,000 long-term loss."""
    return TradeRecord(
        symbol="MSFT",
        purchase_price=Decimal("50"),
        selling_price=Decimal("30"),
        shares_sold=Decimal("100"),
        trading_fees=Decimal("0"),
        holding_period=18,
    )


@pytest.fixture
def sample_journal():
    """Two AAPL buys, one partial sell and a dividend."""
    return [
        JournalEntry("AAPL", "buy", date(2023, 1, 10), Decimal("10"), Decimal("100")),
        JournalEntry("AAPL", "buy", date(2024, 2, 1), Decimal("10"), Decimal("120"), Decimal("10")),
        JournalEntry("AAPL", "dividend", date(2024, 3, 1), Decimal("10"), Decimal("0.25")),
        JournalEntry("AAPL", "sell", date(2024, 6, 15), Decimal("15"), Decimal("150"), Decimal("15")),
    ]


@pytest.fixture
def sample_csv():
    """Broker export with non-standard headers."""
    return (
        "Ticker,Purchase Price,Sale Price,Quantity,Commission,Purchase Date,Sale Date\n"
        "AAPL,100,150,10,5,2024-01-15,2024-06-20\n"
        "MSFT,300,250,4,0,01/10/2022,03/15/2024\n"
        ",10,20,1,0,2024-01-01,2024-02-01\n"
    ).encode()


@pytest.fixture
def client():
    """API client backed by an in-memory SQLite database."""
    from fastapi.testclient import TestClient
    from sqlalchemy.orm import sessionmaker

    from app.main import app
    from app.models import Base, build_engine, get_db, init_db

    engine = build_engine("sqlite://")
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    init_db(engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)
