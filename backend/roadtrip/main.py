"""Road Trip Planner FastAPI Application.

Main entry point for the backend API server.
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from roadtrip.api import router
from roadtrip.config import Settings
from roadtrip.models import (
    ErrorCode,
    LocationNotFound,
    PlanningFailed,
    RoadTripError,
)
from roadtrip.services.planner import create_planner

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the planner and its shared HTTP client."""
    # Startup (a planner installed beforehand, e.g. by tests, is kept)
    client = None
    if getattr(app.state, "planner", None) is None:
        settings = Settings.from_env()
        client = httpx.AsyncClient(
            timeout=settings.http_timeout_seconds,
            headers={"User-Agent": settings.nominatim_user_agent},
        )
        app.state.planner = create_planner(settings, client=client)
        logger.info(f"[PLAN] Services: {app.state.planner.service_status()}")
    yield
    # Shutdown
    await app.state.planner.close()
    if client is not None:
        await client.aclose()


app = FastAPI(
    title="Road Trip Planner API",
    description="Driving routes enriched with points of interest",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:3001",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, code: ErrorCode, message: str, user_message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {
                "code": code.value,
                "message": message,
                "user_message": user_message,
            },
        },
    )


# Global exception handlers
@app.exception_handler(RequestValidationError)
@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: Exception):
    """Handle request and Pydantic validation errors."""
    return _error_response(
        422,
        ErrorCode.VALIDATION_ERROR,
        str(exc),
        "Invalid request format. Please check your input.",
    )


@app.exception_handler(RoadTripError)
async def roadtrip_exception_handler(request: Request, exc: RoadTripError):
    """Map planner errors to HTTP statuses."""
    if isinstance(exc, LocationNotFound):
        status_code = 404
    elif isinstance(exc, PlanningFailed):
        status_code = 502
    else:
        status_code = 500
    logger.warning(f"[PLAN] {request.url.path} failed: {exc}")
    error = exc.to_app_error()
    return _error_response(status_code, error.code, error.message, error.user_message)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.exception("Unhandled error")
    return _error_response(
        500,
        ErrorCode.API_ERROR,
        str(exc),
        "Something went wrong. Please try again.",
    )


# Include API routes
app.include_router(router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
