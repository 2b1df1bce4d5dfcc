"""
Maps exceptions to the API error envelope.

Every failure leaves the API as ``{"success": false, "errors": [...]}``
where each error carries at least ``msg``. Domain errors also carry
``code`` and, when the service attached them, ``details``.
"""
import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from workforce.core.exceptions import AppException

logger = logging.getLogger(__name__)


def error_response(status_code: int, errors: List[Dict[str, Any]], headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "errors": errors},
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        # loc is ("body", "field") or ("query", "field"); drop the source
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
        errors.append({
            "field": ".".join(loc) or "request",
            "msg": error["msg"],
            "code": "VALIDATION_ERROR",
        })

    logger.warning("Request validation failed", extra={"path": request.url.path, "errors": errors})
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, errors)


async def app_exception_handler(request: Request, exc: AppException):
    logger.warning(
        f"{exc.error_code}: {exc.message}",
        extra={"path": request.url.path, "status_code": exc.status_code},
    )
    error = {"msg": exc.message, "code": exc.error_code}
    if exc.details:
        error["details"] = exc.details
    return error_response(exc.status_code, [error])


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    msg = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(exc.status_code, [{"msg": msg}], headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled server error", extra={"path": request.url.path})
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        [{"msg": "An unexpected server error occurred."}],
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(AppException, app_exception_handler)
    # fastapi.HTTPException subclasses the starlette one
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
