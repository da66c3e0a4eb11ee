"""
Error handlers

Every error response is shaped here: {"message", "stack"} with an extra
"errors" list for validation failures. The stack is only exposed outside
production.
"""

import logging
import traceback
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def _stack(request: Request, exc: Exception) -> Optional[str]:
    if request.app.state.settings.is_production:
        return None
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def error_response(request: Request, status_code: int, message: str, exc: Exception, errors: Optional[List[dict]] = None) -> JSONResponse:
    body = {"message": message, "stack": _stack(request, exc)}
    if errors is not None:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body, headers=getattr(exc, "headers", None))


def field_errors(raw: list) -> List[dict]:
    out = []
    for err in raw:
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        out.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return out


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail
    if exc.status_code == 404 and message == "Not Found":
        # No route matched
        message = f"Not Found - {request.url.path}"
    return error_response(request, exc.status_code, str(message), exc)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return error_response(request, 400, "Validation failed", exc, field_errors(exc.errors()))


async def schema_validation_handler(request: Request, exc: ValidationError):
    return error_response(request, 400, "Validation failed", exc, field_errors(exc.errors()))


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    return error_response(request, 400, "Duplicate field value entered", exc)


async def server_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(request, 500, str(exc) or "Server Error", exc)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, schema_validation_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(Exception, server_error_handler)
