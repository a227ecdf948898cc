from .tax_brackets import BracketTable, TaxBracket, get_bracket_table, available_tables
from .us_tax_calculator import USTaxCalculator, TaxResult, TradeRecord, calculate_stock_tax
from .tax_summary import (
    JournalEntry,
    TaxSummary,
    build_tax_summary,
    match_journal,
    monthly_performance,
    optimization_suggestions,
)
from .report_exporter import export_tax_summary_csv

__all__ = [
    "BracketTable",
    "TaxBracket",
    "get_bracket_table",
    "available_tables",
    "USTaxCalculator",
    "TaxResult",
    "TradeRecord",
    "calculate_stock_tax",
    "JournalEntry",
    "TaxSummary",
    "build_tax_summary",
    "match_journal",
    "monthly_performance",
    "optimization_suggestions",
    "export_tax_summary_csv",
]
