"""
U.S. Stock Tax Calculator

A FastAPI application for estimating U.S. federal tax on stock trades
entered manually, uploaded as CSV/Excel, or kept in a transaction journal.

Supports:
- Short-term gains at ordinary income rates (10% - 37%)
- Long-term gains at 0% / 15% / 20%
- Loss netting, $3,000 income offset and loss carryforward
- Net Investment Income Tax (3.8%)
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .logging_config import setup_logging
from .models import init_db
from .routers import upload_router, portfolio_router, tax_router, transactions_router, reports_router

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Stock Tax Calculator",
    description="Estimate U.S. capital gains tax on stock trades",
    version="0.1.0"
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tax_router)
app.include_router(upload_router)
app.include_router(transactions_router)
app.include_router(portfolio_router)
app.include_router(reports_router)


@app.on_event("startup")
async def startup():
    """Initialize database on startup."""
    init_db()
    logger.info("Database ready (%s), default tables %s/%s",
                settings.database_url, settings.default_tax_year, settings.default_filing_status)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Stock Tax Calculator",
        "version": "0.1.0",
        "description": "Estimate U.S. capital gains tax on stock trades",
        "endpoints": {
            "tax": {
                "calculate": "/tax/calculate",
                "brackets": "/tax/brackets/{tax_year}/{filing_status}"
            },
            "upload": "/upload/trades",
            "transactions": {
                "journal": "/transactions",
                "batch": "/transactions/batch"
            },
            "portfolio": {
                "holdings": "/portfolio/holdings",
                "summary": "/portfolio/summary"
            },
            "reports": {
                "tax_summary": "/reports/tax-summary/{tax_year}",
                "export": "/reports/tax-summary/{tax_year}/export",
                "monthly_performance": "/reports/monthly-performance/{tax_year}",
                "suggestions": "/reports/suggestions/{tax_year}"
            }
        },
        "tax_rates": {
            "Short-term": "10% - 37% (ordinary income brackets)",
            "Long-term": "0% / 15% / 20%",
            "NIIT": "3.8% above the income threshold"
        },
        "documentation": "/docs"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
