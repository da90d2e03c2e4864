from __future__ import annotations

import json
import logging
import time
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from processes.api.models import ErrorResponse, HealthResponse, OptimizeResponse
from processes.optimizer import adapter as opt
from processes.optimizer.settings import load_settings
from processes.optimizer.types import ErrorCodes, OptimizerError

API_VERSION = "1.0.0"

app = FastAPI(title="Lagrange latency optimizer", version=API_VERSION)

logger = logging.getLogger("processes.api")


def _error(
    status_code: int, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


@app.exception_handler(StarletteHTTPException)  # type: ignore[misc]
async def http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 405:
        return _error(405, "Method not allowed", headers=exc.headers)
    return _error(exc.status_code, str(exc.detail), headers=exc.headers)


@app.get("/health", response_model=HealthResponse)  # type: ignore[misc]
@app.get("/api/health", response_model=HealthResponse)  # type: ignore[misc]
def health() -> HealthResponse:
    t0 = time.time()
    logger.info(json.dumps({"event": "api_enter", "endpoint": "/health"}))
    out = HealthResponse(version=API_VERSION, time=datetime.now(UTC).isoformat())
    dt = time.time() - t0
    logger.info(json.dumps({"event": "api_exit", "endpoint": "/health", "dt_s": round(dt, 6)}))
    return out


_OPTIMIZE_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    405: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


async def _read_payload(request: Request) -> Any:
    # Non-JSON bodies validate like an empty object
    try:
        return await request.json()
    except ValueError:
        return None


@app.post(
    "/api/optimize",
    response_model=OptimizeResponse,
    responses=_OPTIMIZE_RESPONSES,
)  # type: ignore[misc]
@app.post(
    "/optimize",
    response_model=OptimizeResponse,
    responses=_OPTIMIZE_RESPONSES,
)  # type: ignore[misc]
async def optimize(request: Request) -> Any:
    """Validate the six-field body and run the solver fallback chain.

    400 carries the precise validation reason; any other failure is logged
    and reported as a generic 500.
    """
    t0 = time.time()
    endpoint = request.url.path
    logger.info(json.dumps({"event": "api_enter", "endpoint": endpoint}))
    payload = await _read_payload(request)

    try:
        settings = load_settings()
        envelope = await run_in_threadpool(opt.optimize_payload, payload, settings)
    except OptimizerError as e:
        dt = time.time() - t0
        if e.code is ErrorCodes.INVALID_INPUT:
            logger.info(
                json.dumps(
                    {
                        "event": "api_exit",
                        "endpoint": endpoint,
                        "dt_s": round(dt, 6),
                        "status": 400,
                        "error": e.message,
                    }
                )
            )
            return _error(400, e.user_message)
        logger.error(
            json.dumps(
                {
                    "event": "api_error",
                    "endpoint": endpoint,
                    "dt_s": round(dt, 6),
                    "code": e.code.value,
                    "error": e.message,
                }
            )
        )
        return _error(500, opt.GENERIC_FAILURE_MESSAGE)
    except Exception as e:
        dt = time.time() - t0
        logger.error(
            json.dumps(
                {
                    "event": "api_error",
                    "endpoint": endpoint,
                    "dt_s": round(dt, 6),
                    "error": str(e),
                }
            )
        )
        return _error(500, opt.GENERIC_FAILURE_MESSAGE)

    out = OptimizeResponse.model_validate(envelope)
    dt = time.time() - t0
    logger.info(
        json.dumps(
            {
                "event": "api_exit",
                "endpoint": endpoint,
                "dt_s": round(dt, 6),
                "engine": out.result.engine,
                "iterations": out.result.iterations,
            }
        )
    )
    return out

