"""
API error types and the handlers that render them.

Every error answers with the envelope {"success": false, "error": <message>}
plus any error specific keys.
"""
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

import config

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    status = 500

    def __init__(self, message: str, status_code: int = None, **extra):
        super().__init__(status_code=status_code or self.status, detail=message)
        self.extra = extra


class ValidationError(ApiError):
    status = 400


class AuthError(ApiError):
    status = 401


class NotFoundError(ApiError):
    status = 404


class ConflictError(ApiError):
    status = 409


class ServerError(ApiError):
    status = 500


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


async def api_error_handler(request: Request, exc: ApiError):
    return error_response(exc.status_code, exc.detail, **exc.extra)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        return error_response(404, "Route not found", method=request.method, url=request.url.path)
    return error_response(exc.status_code, str(exc.detail))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in e.get("loc", ()) if p != "body"), "message": e.get("msg")}
        for e in exc.errors()
    ]
    return error_response(400, "Invalid request data", errors=errors)


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    logger.warning("Duplicate key on %s %s: %s", request.method, request.url.path, exc)
    return error_response(409, "Duplicate value for a unique field")


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    if config.IS_PRODUCTION:
        return error_response(500, "Server error")
    return error_response(500, "Server error", detail=str(exc))


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
