"""FastAPI app serving the ArM5 tools static site and lazy sequence evaluation."""

import os
import logging
from pathlib import Path
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from utils import OperationError, run_sequence, setup_logging

from models import (
    SequenceRequest, SequenceResponse, StatusResponse,
    HealthCheckResponse, ErrorResponse
)

# ---------- Configuration ----------

STATIC_DIR = Path(os.environ.get("ARM5_STATIC_DIR", Path(__file__).parent / "static" / "arm5"))
HOST = os.environ.get("ARM5_HOST", "0.0.0.0")
PORT = int(os.environ.get("ARM5_PORT", "3000"))
LOG_LEVEL = os.environ.get("ARM5_LOG_LEVEL", "INFO")
MAX_RANGE = int(os.environ.get("ARM5_MAX_RANGE", "100000"))

setup_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="ArM5 Tools",
    description="Ars Magica 5th edition tools: static site and lazy sequence helpers",
    version="1.0.0"
)

app.mount("/arm5", StaticFiles(directory=STATIC_DIR, html=True, check_dir=False), name="arm5")


@app.get("/", response_model=StatusResponse)
async def root():
    """Basic service banner."""
    return StatusResponse(
        ok=True,
        message="ArM5 Tools server running - static site under /arm5",
        timestamp=datetime.now()
    )


@app.get("/health", response_model=HealthCheckResponse)
async def health():
    """Health probe: the static directory must exist."""
    checks = {"static_dir": STATIC_DIR.is_dir()}
    return HealthCheckResponse(
        status="healthy" if all(checks.values()) else "degraded",
        timestamp=datetime.now(),
        checks=checks
    )


@app.post("/sequence", response_model=SequenceResponse)
def evaluate_sequence(request: SequenceRequest) -> SequenceResponse:
    """
    Evaluate a lazy pipeline over ``range(start, end, step)``.

    Only the elements the pipeline needs are pulled from the range; the
    ``pulled`` field reports how many that was.
    """
    source = range(request.start, request.end, request.step)
    if len(source) > MAX_RANGE:
        raise OperationError(f"Range spans {len(source)} elements, more than the allowed {MAX_RANGE}")

    # flat_map multiplies the number of elements a query may have to visit
    expansion = len(source)
    for op in request.operations:
        if op.type == "flat_map":
            expansion *= 1 if op.count is None else op.count
    if expansion > MAX_RANGE:
        raise OperationError(f"Pipeline may produce {expansion} elements, more than the allowed {MAX_RANGE}")

    result = run_sequence(
        source,
        [op.to_op() for op in request.operations],
        query=request.query.to_op() if request.query else None,
        limit=request.limit
    )
    return SequenceResponse(ok=True, **result)


# Exception handlers for proper error responses
@app.exception_handler(OperationError)
async def operation_error_handler(request: Request, exc: OperationError):
    logger.warning(f"Rejected sequence request: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=str(exc),
            error_code="INVALID_OPERATION",
            timestamp=datetime.now(timezone.utc).isoformat()
        ).model_dump()
    )


if __name__ == "__main__":
    import uvicorn
    logger.info(f"ArM5Tools Server running on port {PORT}")
    uvicorn.run(app, host=HOST, port=PORT)
