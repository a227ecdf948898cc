from .upload import router as upload_router
from .portfolio import router as portfolio_router
from .tax import router as tax_router
from .transactions import router as transactions_router
from .reports import router as reports_router

__all__ = ["upload_router", "portfolio_router", "tax_router", "transactions_router", "reports_router"]
