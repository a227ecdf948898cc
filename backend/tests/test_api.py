"""
API tests against an in-memory database.
"""
import pytest


ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}

JOURNAL = [
    {"ticker": "aapl", "transaction_type": "buy", "transaction_date": "2023-01-10", "shares": 10, "price": 100},
    {"ticker": "AAPL", "transaction_type": "buy", "transaction_date": "2024-02-01", "shares": 10, "price": 120, "fee": 10},
    {"ticker": "AAPL", "transaction_type": "dividend", "transaction_date": "2024-03-01", "shares": 10, "price": 0.25},
    {"ticker": "AAPL", "transaction_type": "sell", "transaction_date": "2024-06-15", "shares": 15, "price": 150, "fee": 15},
]


@pytest.fixture
def journal_client(client):
    response = client.post("/transactions/batch", json={"transactions": JOURNAL}, headers=ALICE)
    assert response.status_code == 201
    return client


class TestAppInfo:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "Stock Tax Calculator"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestTaxEndpoints:
    """Test /tax."""

    def test_calculate(self, client):
        response = client.post("/tax/calculate", json={
            "base_income": 50000,
            "trades": [
                {"symbol": "aapl", "purchase_price": 100, "selling_price": 150, "shares_sold": 100, "holding_period": 6},
                {"symbol": "MSFT", "purchase_price": 50, "selling_price": 30, "shares_sold": 100, "holding_period": 18},
            ],
        })

        assert response.status_code == 200
        data = response.json()
        assert data["tax_year"] == 2024
        assert data["filing_status"] == "single"
        assert data["short_term_gains"] == 3000.0
        assert data["short_term_tax"] == 660.0
        assert data["ordinary_income_tax"] == 6053.0
        assert data["total_tax"] == 6713.0
        assert data["trades"] == [
            {"symbol": "AAPL", "gain_loss": 5000.0, "term": "short"},
            {"symbol": "MSFT", "gain_loss": -2000.0, "term": "long"},
        ]

    def test_calculate_skips_blank_trades(self, client):
        response = client.post("/tax/calculate", json={
            "base_income": 50000,
            "trades": [{"symbol": "", "purchase_price": 1, "selling_price": 2, "shares_sold": 1}],
        })
        data = response.json()
        assert data["trades_skipped"] == 1
        assert data["trades"] == []

    @pytest.mark.parametrize("income", [0, -500])
    def test_invalid_income(self, client, income):
        response = client.post("/tax/calculate", json={"base_income": income, "trades": []})
        assert response.status_code == 400
        assert response.json()["detail"] == "Please enter a valid total taxable income"

    def test_unsupported_year(self, client):
        response = client.post("/tax/calculate", json={"base_income": 50000, "trades": [], "tax_year": 1999})
        assert response.status_code == 400
        assert "1999" in response.json()["detail"]

    def test_married_joint(self, client):
        response = client.post("/tax/calculate", json={
            "base_income": 240000,
            "tax_year": 2025,
            "filing_status": "married_joint",
            "trades": [{"symbol": "NVDA", "purchase_price": 100, "selling_price": 200, "shares_sold": 100, "holding_period": 2}],
        })
        data = response.json()
        assert data["tax_year"] == 2025
        assert data["niit_tax"] == 0.0

    def test_list_brackets(self, client):
        tables = client.get("/tax/brackets").json()
        assert {"tax_year": 2025, "filing_status": "single"} in tables

    def test_get_brackets(self, client):
        data = client.get("/tax/brackets/2024/single").json()
        assert data["long_term_brackets"][1] == {"rate": 0.15, "threshold": 47025.0}

    def test_get_brackets_unknown(self, client):
        assert client.get("/tax/brackets/2019/single").status_code == 404


class TestUploadEndpoints:
    """Test /upload."""

    def test_fields(self, client):
        fields = client.get("/upload/fields").json()
        assert len(fields) == 7
        fee = next(f for f in fields if f["field"] == "Fee/Commissions")
        assert fee["required"] is False

    def test_upload_csv(self, client, sample_csv):
        response = client.post(
            "/upload/trades",
            files={"file": ("trades.csv", sample_csv, "text/csv")},
            data={"base_income": "50000"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["trades_parsed"] == 2
        assert data["skipped_rows"] == [3]
        assert data["mapping"]["Symbol"] == "Ticker"
        assert data["trades"][0]["gain_loss"] == 495.0
        assert data["trades"][1]["holding_period"] == 26

        # 495 short-term minus the 200 long-term loss
        assert data["tax"]["short_term_gains"] == 295.0
        assert data["tax"]["short_term_tax"] == 65.0

    def test_upload_without_income(self, client, sample_csv):
        response = client.post("/upload/trades", files={"file": ("trades.csv", sample_csv, "text/csv")})
        assert response.json()["tax"] is None

    def test_upload_missing_columns(self, client):
        response = client.post(
            "/upload/trades",
            files={"file": ("trades.csv", b"Ticker,Price\nAAPL,10\n", "text/csv")},
        )
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert "Buy Price" in detail["missing_fields"]

    def test_upload_with_mapping(self, client):
        content = b"Sym,Bought,Sold,N,Opened,Closed\nTSLA,200,260,3,2023-02-01,2024-04-01\n"
        mapping = (
            '{"Symbol": "Sym", "Buy Price": "Bought", "Sell Price": "Sold",'
            ' "Shares Sold": "N", "Buy Date": "Opened", "Sell Date": "Closed"}'
        )
        response = client.post(
            "/upload/trades",
            files={"file": ("t.csv", content, "text/csv")},
            data={"column_mapping": mapping},
        )
        assert response.status_code == 200
        assert response.json()["trades"][0]["gain_loss"] == 180.0

    def test_upload_bad_mapping_json(self, client, sample_csv):
        response = client.post(
            "/upload/trades",
            files={"file": ("trades.csv", sample_csv, "text/csv")},
            data={"column_mapping": "not json"},
        )
        assert response.status_code == 400

    def test_upload_infinite_cell(self, client):
        content = (
            b"Symbol,Buy Price,Sell Price,Shares Sold,Buy Date,Sell Date\n"
            b"AAPL,1,2,inf,2024-01-01,2024-02-01\n"
            b"MSFT,10,12,5,2024-01-01,2024-02-01\n"
        )
        response = client.post(
            "/upload/trades",
            files={"file": ("t.csv", content, "text/csv")},
            data={"base_income": "50000"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["skipped_rows"] == [1]
        assert data["trades_parsed"] == 1
        # 10 short-term at 22%
        assert data["tax"]["short_term_tax"] == 2.0

    def test_upload_unsupported_type(self, client):
        response = client.post("/upload/trades", files={"file": ("trades.pdf", b"%PDF", "application/pdf")})
        assert response.status_code == 400
        assert "Unsupported file type" in response.json()["detail"]


class TestTransactionEndpoints:
    """Test the per-user journal."""

    def _create(self, client, headers=ALICE, **overrides):
        payload = {
            "ticker": "aapl",
            "transaction_type": "buy",
            "transaction_date": "2024-01-15",
            "shares": 10,
            "price": 100,
        }
        payload.update(overrides)
        return client.post("/transactions", json=payload, headers=headers)

    def test_requires_user_header(self, client):
        assert client.get("/transactions").status_code == 401
        assert self._create(client, headers={}).status_code == 401

    def test_create(self, client):
        response = self._create(client, fee=1.5, notes="first lot")
        assert response.status_code == 201
        transaction = response.json()["transaction"]
        assert transaction["ticker"] == "AAPL"
        assert transaction["transaction_type"] == "buy"
        assert transaction["amount"] == 1000.0
        assert transaction["fee"] == 1.5
        assert transaction["notes"] == "first lot"

    @pytest.mark.parametrize("overrides", [
        {"shares": 0},
        {"price": -1},
        {"transaction_type": "split"},
        {"ticker": ""},
    ])
    def test_create_validation(self, client, overrides):
        assert self._create(client, **overrides).status_code == 422

    def test_users_are_isolated(self, client):
        transaction_id = self._create(client).json()["transaction"]["id"]

        assert client.get(f"/transactions/{transaction_id}", headers=ALICE).status_code == 200
        assert client.get(f"/transactions/{transaction_id}", headers=BOB).status_code == 404
        assert client.get("/transactions", headers=BOB).json() == []

    def test_update_recalculates_amount(self, client):
        transaction_id = self._create(client).json()["transaction"]["id"]

        response = client.put(f"/transactions/{transaction_id}", json={"shares": 20, "price": 50.5}, headers=ALICE)
        assert response.status_code == 200
        transaction = response.json()["transaction"]
        assert transaction["shares"] == 20.0
        assert transaction["amount"] == 1010.0

    def test_delete(self, client):
        transaction_id = self._create(client).json()["transaction"]["id"]

        assert client.delete(f"/transactions/{transaction_id}", headers=BOB).status_code == 404
        assert client.delete(f"/transactions/{transaction_id}", headers=ALICE).status_code == 200
        assert client.get(f"/transactions/{transaction_id}", headers=ALICE).status_code == 404

    def test_list_filters(self, journal_client):
        everything = journal_client.get("/transactions", headers=ALICE).json()
        assert len(everything) == 4
        assert everything[0]["transaction_date"] == "2024-06-15"

        buys = journal_client.get("/transactions", params={"transaction_type": "buy"}, headers=ALICE).json()
        assert len(buys) == 2

        recent = journal_client.get("/transactions", params={"start_date": "2024-01-01"}, headers=ALICE).json()
        assert len(recent) == 3

    def test_list_unknown_type(self, client):
        response = client.get("/transactions", params={"transaction_type": "split"}, headers=ALICE)
        assert response.status_code == 400

    def test_batch(self, client):
        response = client.post("/transactions/batch", json={"transactions": JOURNAL}, headers=ALICE)
        assert response.status_code == 201
        assert response.json()["count"] == 4

    def test_empty_batch(self, client):
        response = client.post("/transactions/batch", json={"transactions": []}, headers=ALICE)
        assert response.status_code == 400
        assert response.json()["detail"] == "No valid transaction data found"


class TestPortfolioEndpoints:

    def test_holdings(self, journal_client):
        holdings = journal_client.get("/portfolio/holdings", headers=ALICE).json()
        assert len(holdings) == 1

        summary = holdings[0]["summary"]
        assert holdings[0]["ticker"] == "AAPL"
        assert summary["total_shares"] == 5.0
        assert summary["total_invested"] == 2200.0
        assert summary["total_fees"] == 25.0
        assert summary["average_cost"] == 120.0
        assert summary["open_cost_basis"] == 600.0
        assert summary["realized_gain_loss"] == 630.0
        assert summary["dividends"] == 2.5
        assert len(holdings[0]["transactions"]) == 4

    def test_summary(self, journal_client):
        data = journal_client.get("/portfolio/summary", headers=ALICE).json()
        assert data["total_tickers"] == 1
        assert data["total_transactions"] == 4
        assert data["transactions_by_type"] == {"buy": 2, "sell": 1, "dividend": 1}


class TestReportEndpoints:

    def test_tax_summary(self, journal_client):
        response = journal_client.get("/reports/tax-summary/2024", params={"base_income": 50000}, headers=ALICE)
        assert response.status_code == 200
        data = response.json()
        assert data["short_term_tax"] == 31.0
        assert data["long_term_tax"] == 74.0
        assert data["capital_gains_tax"] == 105.0
        assert data["tax_rate"] == 16.67
        assert data["dividends"] == 2.5

    def test_tax_summary_requires_income(self, journal_client):
        response = journal_client.get("/reports/tax-summary/2024", headers=ALICE)
        assert response.status_code == 422

    def test_tax_summary_unsupported_year(self, journal_client):
        response = journal_client.get("/reports/tax-summary/2019", params={"base_income": 50000}, headers=ALICE)
        assert response.status_code == 400

    def test_export(self, journal_client):
        response = journal_client.get(
            "/reports/tax-summary/2024/export", params={"base_income": 50000}, headers=ALICE
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "tax-summary-2024.csv" in response.headers["content-disposition"]
        assert "Total tax,6158.00" in response.text

    def test_monthly_performance(self, journal_client):
        data = journal_client.get(
            "/reports/monthly-performance/2024", params={"base_income": 50000}, headers=ALICE
        ).json()
        assert data["best_month"] == "June"
        assert data["months"][5]["returns"] == 39.38

    def test_suggestions(self, journal_client):
        response = journal_client.post(
            "/reports/suggestions/2024",
            json={"base_income": 50000, "current_prices": {"AAPL": 100}},
            headers=ALICE,
        )
        assert response.status_code == 200
        suggestions = response.json()
        assert len(suggestions) == 1
        assert suggestions[0]["type"] == "tax_loss_harvesting"
        # 5 open shares at 120, now 100
        assert suggestions[0]["potential_savings"] == 22.0
