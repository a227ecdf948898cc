"""
U.S. Federal Tax Bracket Tables

Ordered (rate, threshold) tables per tax year and filing status:
- Ordinary income brackets (7 rows, 10% - 37%) - also used for short-term gains
- Long-term capital gains brackets (3 rows, 0% / 15% / 20%)
- NIIT: 3.8% on investment income above the threshold
- Capital losses offset at most $3,000 of ordinary income per year

Thresholds are the lower bound of each slice, the first row starts at 0.
"""

from dataclasses import dataclass
from decimal import Decimal

from ..exceptions import UnsupportedTaxYearError


FILING_STATUSES = ("single", "married_joint")


@dataclass(frozen=True)
class TaxBracket:
    """One slice of a progressive schedule."""
    rate: Decimal
    threshold: Decimal


@dataclass(frozen=True)
class BracketTable:
    """All rates and thresholds needed for one tax year and filing status."""
    tax_year: int
    filing_status: str
    ordinary_brackets: tuple[TaxBracket, ...]
    long_term_brackets: tuple[TaxBracket, ...]
    niit_rate: Decimal = Decimal("0.038")
    niit_threshold: Decimal = Decimal("200000")
    income_loss_cap: Decimal = Decimal("3000")

    def __post_init__(self):
        for name in ("ordinary_brackets", "long_term_brackets"):
            brackets = getattr(self, name)
            if not brackets:
                raise ValueError(f"{name} must not be empty")
            if brackets[0].threshold != 0:
                raise ValueError(f"{name} must start at threshold 0")
            for lower, upper in zip(brackets, brackets[1:]):
                if upper.threshold <= lower.threshold:
                    raise ValueError(f"{name} thresholds must strictly increase")

    def to_dict(self) -> dict:
        return {
            "tax_year": self.tax_year,
            "filing_status": self.filing_status,
            "ordinary_brackets": [
                {"rate": float(b.rate), "threshold": float(b.threshold)}
                for b in self.ordinary_brackets
            ],
            "long_term_brackets": [
                {"rate": float(b.rate), "threshold": float(b.threshold)}
                for b in self.long_term_brackets
            ],
            "niit_rate": float(self.niit_rate),
            "niit_threshold": float(self.niit_threshold),
            "income_loss_cap": float(self.income_loss_cap),
        }


def _brackets(*rows: tuple[str, int]) -> tuple[TaxBracket, ...]:
    return tuple(TaxBracket(rate=Decimal(rate), threshold=Decimal(threshold)) for rate, threshold in rows)


_ORDINARY_RATES = ("0.10", "0.12", "0.22", "0.24", "0.32", "0.35", "0.37")
_LONG_TERM_RATES = ("0.00", "0.15", "0.20")


def _table(
    tax_year: int,
    filing_status: str,
    ordinary: tuple[int, ...],
    long_term: tuple[int, ...],
    niit_threshold: int,
) -> BracketTable:
    return BracketTable(
        tax_year=tax_year,
        filing_status=filing_status,
        ordinary_brackets=_brackets(*zip(_ORDINARY_RATES, ordinary)),
        long_term_brackets=_brackets(*zip(_LONG_TERM_RATES, long_term)),
        niit_threshold=Decimal(niit_threshold),
    )


_TABLES: dict[tuple[int, str], BracketTable] = {
    (2024, "single"): _table(
        2024, "single",
        ordinary=(0, 11601, 47151, 100526, 191951, 243726, 609351),
        long_term=(0, 47025, 518900),
        niit_threshold=200000,
    ),
    (2024, "married_joint"): _table(
        2024, "married_joint",
        ordinary=(0, 23201, 94301, 201051, 383901, 487451, 731201),
        long_term=(0, 94050, 583750),
        niit_threshold=250000,
    ),
    (2025, "single"): _table(
        2025, "single",
        ordinary=(0, 11926, 48476, 103351, 197301, 250526, 626351),
        long_term=(0, 48350, 533400),
        niit_threshold=200000,
    ),
    (2025, "married_joint"): _table(
        2025, "married_joint",
        ordinary=(0, 23851, 96951, 206701, 394601, 501051, 751601),
        long_term=(0, 96700, 600050),
        niit_threshold=250000,
    ),
}


def get_bracket_table(tax_year: int, filing_status: str = "single") -> BracketTable:
    """Look up the bracket table for a tax year and filing status."""
    key = (tax_year, filing_status.lower())
    if key not in _TABLES:
        raise UnsupportedTaxYearError(
            f"No tax brackets for {tax_year} ({filing_status}). "
            f"Available: {', '.join(f'{y}/{s}' for y, s in sorted(_TABLES))}"
        )
    return _TABLES[key]


def available_tables() -> list[dict]:
    """List the (tax year, filing status) pairs that have bracket tables."""
    return [
        {"tax_year": year, "filing_status": status}
        for year, status in sorted(_TABLES)
    ]
