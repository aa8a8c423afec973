"""MedInvoice API - FastAPI application for patient invoicing."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import invoices, reference, transactions
from medinvoice.core.config import get_settings
from medinvoice.core.constants import ERROR_BAD_REQUEST

_settings = get_settings()

logging.basicConfig(
    level=_settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    stream=sys.stdout,
)

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting MedInvoice API (%s)", _settings.environment)
    yield
    logger.info("Shutting down MedInvoice API")

app = FastAPI(
    title=_settings.api_title,
    description="Patient invoicing for hospital management systems",
    version=_settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(RequestValidationError)
async def bad_request_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed or incomplete requests are 400, not 422."""
    logger.warning("Bad request on %s %s: %d error(s)", request.method, request.url.path, len(exc.errors()))
    return JSONResponse(
        status_code=400,
        content={
            "detail": {
                "code": ERROR_BAD_REQUEST,
                "description": "The request is missing required fields or contains invalid values",
                "errors": jsonable_encoder(exc.errors()),
            }
        },
    )

app.include_router(invoices.router, tags=["Invoices"])
app.include_router(transactions.router, tags=["Transactions"])
app.include_router(reference.router, tags=["Reference"])

@app.get("/")
async def root():
    return {"name": _settings.api_title, "version": _settings.api_version, "docs": "/docs"}

@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": _settings.api_version}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.main:app", host=_settings.api_host, port=_settings.api_port, reload=_settings.is_development)
