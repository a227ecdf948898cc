"""
Tests for the federal bracket tables.
"""
import pytest
from decimal import Decimal

from app.exceptions import TaxCalculationError, UnsupportedTaxYearError
from app.services.tax_brackets import (
    FILING_STATUSES,
    BracketTable,
    TaxBracket,
    available_tables,
    get_bracket_table,
)


class TestBracketTables:
    """Test the shipped tables."""

    @pytest.mark.parametrize("year", [2024, 2025])
    @pytest.mark.parametrize("status", FILING_STATUSES)
    def test_tables_shape(self, year, status):
        table = get_bracket_table(year, status)
        assert table.tax_year == year
        assert table.filing_status == status
        assert [b.rate for b in table.ordinary_brackets] == [
            Decimal(r) for r in ("0.10", "0.12", "0.22", "0.24", "0.32", "0.35", "0.37")
        ]
        assert [b.rate for b in table.long_term_brackets] == [
            Decimal(r) for r in ("0.00", "0.15", "0.20")
        ]
        assert table.niit_rate == Decimal("0.038")
        assert table.income_loss_cap == Decimal("3000")

    def test_2024_single_thresholds(self):
        table = get_bracket_table(2024, "single")
        assert [b.threshold for b in table.ordinary_brackets] == [
            0, 11601, 47151, 100526, 191951, 243726, 609351
        ]
        assert [b.threshold for b in table.long_term_brackets] == [0, 47025, 518900]
        assert table.niit_threshold == Decimal("200000")

    def test_married_joint_niit_threshold(self):
        assert get_bracket_table(2024, "married_joint").niit_threshold == Decimal("250000")

    def test_filing_status_case_insensitive(self):
        assert get_bracket_table(2025, "SINGLE") is get_bracket_table(2025, "single")

    def test_unknown_year(self):
        with pytest.raises(UnsupportedTaxYearError, match="2019"):
            get_bracket_table(2019, "single")

    def test_unknown_filing_status(self):
        with pytest.raises(TaxCalculationError):
            get_bracket_table(2024, "head_of_household")

    def test_available_tables(self):
        tables = available_tables()
        assert {"tax_year": 2024, "filing_status": "single"} in tables
        assert {"tax_year": 2025, "filing_status": "married_joint"} in tables
        assert len(tables) == 4

    def test_to_dict_uses_floats(self):
        data = get_bracket_table(2024, "single").to_dict()
        assert data["ordinary_brackets"][1] == {"rate": 0.12, "threshold": 11601.0}
        assert data["niit_threshold"] == 200000.0


class TestBracketValidation:
    """Test that malformed tables are rejected."""

    def _table(self, ordinary):
        return BracketTable(
            tax_year=2030,
            filing_status="single",
            ordinary_brackets=ordinary,
            long_term_brackets=(TaxBracket(Decimal("0"), Decimal("0")),),
        )

    def test_empty_brackets(self):
        with pytest.raises(ValueError, match="must not be empty"):
            self._table(())

    def test_first_threshold_must_be_zero(self):
        with pytest.raises(ValueError, match="threshold 0"):
            self._table((TaxBracket(Decimal("0.10"), Decimal("100")),))

    def test_thresholds_must_increase(self):
        with pytest.raises(ValueError, match="strictly increase"):
            self._table((
                TaxBracket(Decimal("0.10"), Decimal("0")),
                TaxBracket(Decimal("0.12"), Decimal("5000")),
                TaxBracket(Decimal("0.22"), Decimal("5000")),
            ))

    def test_valid_custom_table(self):
        table = self._table((
            TaxBracket(Decimal("0.10"), Decimal("0")),
            TaxBracket(Decimal("0.20"), Decimal("1000")),
        ))
        assert len(table.ordinary_brackets) == 2
