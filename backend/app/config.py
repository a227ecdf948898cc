"""Application settings, read from STOCKTAX_* environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path

# Default database path
DB_PATH = Path(__file__).parent.parent.parent / "data" / "stock_tax.db"


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Runtime configuration."""

    database_url: str = f"sqlite:///{DB_PATH}"
    default_tax_year: int = 2024
    default_filing_status: str = "single"  # "single" or "married_joint"
    log_level: str = "INFO"
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )

    @classmethod
    def from_env(cls) -> "Settings":
        settings = cls()
        env = os.environ

        if "STOCKTAX_DATABASE_URL" in env:
            settings.database_url = env["STOCKTAX_DATABASE_URL"]
        if "STOCKTAX_DEFAULT_TAX_YEAR" in env:
            settings.default_tax_year = int(env["STOCKTAX_DEFAULT_TAX_YEAR"])
        if "STOCKTAX_DEFAULT_FILING_STATUS" in env:
            settings.default_filing_status = env["STOCKTAX_DEFAULT_FILING_STATUS"].lower()
        if "STOCKTAX_LOG_LEVEL" in env:
            settings.log_level = env["STOCKTAX_LOG_LEVEL"].upper()
        if "STOCKTAX_CORS_ORIGINS" in env:
            settings.cors_origins = _split(env["STOCKTAX_CORS_ORIGINS"])

        return settings


settings = Settings.from_env()
