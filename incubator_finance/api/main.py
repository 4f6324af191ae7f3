"""
FastAPI Main Application

Entry point for the incubator grant ledger API.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..grants.exceptions import (
    CatalogPayloadError,
    GrantLedgerError,
    LedgerNotFoundError,
    LedgerStateError,
    LedgerValidationError,
)
from .database import check_connection, get_engine
from .routes import (
    disbursements_router,
    financials_router,
    reports_router,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Incubator Grant Ledger API...")
    yield
    logger.info("Shutting down Incubator Grant Ledger API...")


app = FastAPI(
    title="Incubator Grant Ledger API",
    description="Grant disbursements, utilization certificates and compliance reports",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS configuration
cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_status(exc: GrantLedgerError) -> int:
    """HTTP status code for a ledger error."""
    if isinstance(exc, LedgerValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, LedgerNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, LedgerStateError):
        return status.HTTP_409_CONFLICT
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(GrantLedgerError)
async def ledger_error_handler(request: Request, exc: GrantLedgerError) -> JSONResponse:
    status_code = error_status(exc)
    logger.warning(f"{request.method} {request.url.path} failed with {status_code}: {exc}")

    content = {"ok": False, "error": str(exc)}
    if isinstance(exc, CatalogPayloadError):
        content["errors"] = [exc.to_dict()]
    return JSONResponse(status_code=status_code, content=content)


# Include routers
app.include_router(financials_router, prefix="/api")
app.include_router(disbursements_router, prefix="/api")
app.include_router(reports_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Incubator Grant Ledger API",
        "version": "1.0.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/health/ready")
async def readiness_check(engine: Engine = Depends(get_engine)):
    """Readiness check: the database must be reachable."""
    try:
        check_connection(engine)
    except SQLAlchemyError as exc:
        logger.warning(f"Database not reachable: {exc}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable", "database": "unreachable"},
        )
    return {"status": "ready", "database": "reachable"}


@app.get("/api")
async def api_info():
    """API information endpoint."""
    return {
        "endpoints": {
            "financials": "/api/grants/financials",
            "catalog": "/api/grants/{startup_id}/catalog",
            "disbursements": "/api/grants/{startup_id}/disbursements",
            "all_disbursements": "/api/grants/{startup_id}/disbursements/all",
            "reports": "/api/grants/{startup_id}/reports",
            "certificate": "/api/grants/{startup_id}/reports/certificate",
            "compliance_report": "/api/grants/{startup_id}/reports/compliance",
            "certificate_xlsx": "/api/grants/{startup_id}/reports/certificate.xlsx",
            "certificate_pdf": "/api/grants/{startup_id}/reports/certificate.pdf",
        },
        "authentication": "X-User-ID header required in production",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "incubator_finance.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=os.getenv("ENVIRONMENT", "development") == "development",
    )
