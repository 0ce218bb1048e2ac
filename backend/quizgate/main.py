from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from quizgate.api.routes.attempts import router as attempts_router
from quizgate.api.routes.auth import router as auth_router
from quizgate.api.routes.health import router as health_router
from quizgate.api.routes.profile import router as profile_router
from quizgate.api.routes.quizzes import router as quizzes_router
from quizgate.api.routes.teacher_quizzes import router as teacher_quizzes_router
from quizgate.core.config import settings
from quizgate.core.errors import AppError, TransientStoreError
from quizgate.schemas.common import Envelope
from quizgate.services.attempt_registry import registry


logger = logging.getLogger(__name__)


def envelope(request_id: str, data: Any = None, error: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return Envelope(request_id=request_id, data=data, error=error).model_dump()


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = req_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = req_id
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if isinstance(exc, TransientStoreError):
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(request_id=_request_id(request), data=None, error=exc.to_error()),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if isinstance(detail, dict):
        code = str(detail.get("code") or "HTTP_ERROR")
        message = detail.get("message") or str(detail)
        error = {"code": code, "message": message, "details": detail}
    else:
        error = {"code": "HTTP_ERROR", "message": str(detail)}

    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(request_id=_request_id(request), data=None, error=error),
        headers=getattr(exc, "headers", None),
    )


def _jsonable_errors(exc: RequestValidationError):
    # pydantic may put exception objects into "ctx"
    out = []
    for err in exc.errors():
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in (err["ctx"] or {}).items()}
        out.append(err)
    return out


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=envelope(
            request_id=_request_id(request),
            data=None,
            error={
                "code": "VALIDATION_ERROR",
                "message": "Invalid request",
                "details": {"errors": _jsonable_errors(exc)},
            },
        ),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=envelope(
            request_id=_request_id(request),
            data=None,
            error={"code": "INTERNAL_ERROR", "message": "Internal server error"},
        ),
    )


@app.on_event("shutdown")
async def stop_countdowns():
    await registry.shutdown()


app.include_router(health_router, prefix="/api")
app.include_router(auth_router, prefix="/api")
app.include_router(profile_router, prefix="/api")
app.include_router(teacher_quizzes_router, prefix="/api")
app.include_router(quizzes_router, prefix="/api")
app.include_router(attempts_router, prefix="/api")
