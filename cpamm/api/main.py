"""FastAPI application for the pool service.

Pool operations are synchronous and serialized per pair by the controller;
FastAPI runs the plain ``def`` endpoints in its threadpool.
"""

import os

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cpamm.api.endpoints import router
from cpamm.errors import AMMError, InvalidInput, ReentrantCall
from cpamm.logs import configure_logging
from cpamm.models import ErrorResponse

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("CPAMM_HOST", "0.0.0.0")
PORT = int(os.environ.get("CPAMM_PORT", "8000"))
DEBUG = os.environ.get("CPAMM_DEBUG", "false").lower() in ("true", "1", "yes")
LOG_LEVEL = os.environ.get("CPAMM_LOG_LEVEL", "info")

app = FastAPI(
    title="Constant-Product AMM",
    description="Two-asset constant-product pools with a fixed 0.3% swap fee",
    version="0.1.0",
)


def status_for(error: AMMError) -> int:
    """HTTP status for a pool error."""
    if isinstance(error, InvalidInput):
        return 422
    if isinstance(error, ReentrantCall):
        return 409
    return 400


@app.exception_handler(AMMError)
async def amm_error_handler(_request: Request, exc: AMMError) -> JSONResponse:
    """Report which precondition failed."""
    return JSONResponse(
        status_code=status_for(exc),
        content=ErrorResponse(error=exc.code, detail=str(exc)).model_dump(),
    )


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok"}


def run() -> None:
    """Run the pool API server.

    Configuration via environment variables:
    - CPAMM_HOST: Host to bind to (default: 0.0.0.0)
    - CPAMM_PORT: Port to bind to (default: 8000)
    - CPAMM_DEBUG: Enable debug/reload mode (default: false)
    - CPAMM_LOG_LEVEL: structlog level (default: info)
    """
    configure_logging(LOG_LEVEL)
    uvicorn.run(
        "cpamm.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
