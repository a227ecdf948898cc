"""Domain errors raised by the tax services and trade-file parser."""


class TaxCalculationError(ValueError):
    """Input that the tax calculation cannot work with."""


class InvalidIncomeError(TaxCalculationError):
    """Base taxable income must be a positive amount."""


class UnsupportedTaxYearError(TaxCalculationError):
    """No bracket table exists for the requested year / filing status."""


class TradeFileError(ValueError):
    """An uploaded trade history could not be read."""


class MissingColumnsError(TradeFileError):
    """Required trade fields could not be mapped to any column."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Required fields not mapped: {', '.join(missing)}")
