"""
Secure Ledger API Application Factory
"""

from typing import Optional

from fastapi import FastAPI
import uvicorn

from ..config import SecureLedgerConfig, get_config
from ..errors import SecureLedgerError
from .errors import secure_ledger_error_handler
from .encryption import router as encryption_router
from .transactions import router as transactions_router


def create_app(config: Optional[SecureLedgerConfig] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    config = config or get_config()

    app = FastAPI(
        title="Secure Ledger API",
        description="Encrypted money transfers recorded as idempotent double-entry ledger pairs",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_exception_handler(SecureLedgerError, secure_ledger_error_handler)

    # Include routers
    app.include_router(transactions_router, prefix="/transactions", tags=["Transactions"])
    if config.enable_encryption_endpoints:
        app.include_router(encryption_router, prefix="/encryption", tags=["Encryption (development)"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "secure_ledger_api",
            "version": "1.0.0"
        }

    return app


def run_server(host: str = "0.0.0.0", port: int = 8080, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "secure_ledger.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
