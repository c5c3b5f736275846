"""
Uniform API envelopes.

Success: {"success": true, "data": ..., "message"?: "<i18n key>"}
Error:   {"success": false, "error": {"code": "...", "message": "<i18n key>", "details"?: ...}}

Messages are i18n keys; clients translate them (see i18n.catalog.translate_api_error).
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from marquee.utils.clock import to_iso

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """HTTPException carrying a machine-readable code and an i18n message key."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code = code
        self.message = message
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"success": False, "error": error}


def success(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"success": True, "data": data}
    if message:
        payload["message"] = message
    return payload


# ---------------------------------------------------------------------------
# Predefined errors
# ---------------------------------------------------------------------------


def unauthorized(message: str = "api.errors.unauthorized") -> ApiError:
    return ApiError(401, "UNAUTHORIZED", message)


def forbidden(message: str = "api.errors.forbidden") -> ApiError:
    return ApiError(403, "FORBIDDEN", message)


def not_found(message: str = "api.errors.notFound") -> ApiError:
    return ApiError(404, "NOT_FOUND", message)


def bad_request(message: str = "api.errors.badRequest", details: Any = None) -> ApiError:
    return ApiError(400, "BAD_REQUEST", message, details)


def validation_error(message: str = "api.errors.validationError", details: Any = None) -> ApiError:
    return ApiError(400, "VALIDATION_ERROR", message, details)


def conflict(message: str) -> ApiError:
    return ApiError(409, "CONFLICT", message)


def rate_limit_exceeded(reset_at: Optional[datetime] = None, headers: Optional[Dict[str, str]] = None) -> ApiError:
    details = {"resetTime": to_iso(reset_at)} if reset_at else None
    return ApiError(429, "RATE_LIMIT_EXCEEDED", "api.errors.rateLimitExceeded", details, headers)


def internal_error(message: str = "api.errors.internalError") -> ApiError:
    return ApiError(500, "INTERNAL_ERROR", message)


def server_misconfigured(message: str = "api.errors.serverMisconfigured") -> ApiError:
    return ApiError(500, "SERVER_MISCONFIGURED", message)


def bad_gateway(message: str = "api.errors.upstreamError") -> ApiError:
    return ApiError(502, "UPSTREAM_ERROR", message)


def service_unavailable(message: str = "api.errors.serviceUnavailable") -> ApiError:
    return ApiError(503, "SERVICE_UNAVAILABLE", message)


def gateway_timeout(message: str = "api.errors.timeout") -> ApiError:
    return ApiError(504, "GATEWAY_TIMEOUT", message)


def method_not_allowed(message: str = "api.errors.methodNotAllowed") -> ApiError:
    return ApiError(405, "METHOD_NOT_ALLOWED", message)


# ---------------------------------------------------------------------------
# Validation errors -> first violation message
# ---------------------------------------------------------------------------

_GENERIC_MESSAGES = {
    "missing": "api.validation.required",
    "string_too_short": "api.validation.tooShort",
    "string_too_long": "api.validation.tooLong",
    "string_pattern_mismatch": "api.validation.invalidFormat",
    "value_error": "api.validation.invalidValue",
    "literal_error": "api.validation.invalidValue",
    "enum": "api.validation.invalidValue",
    "greater_than": "api.validation.outOfRange",
    "greater_than_equal": "api.validation.outOfRange",
    "less_than": "api.validation.outOfRange",
    "less_than_equal": "api.validation.outOfRange",
    "int_parsing": "api.validation.invalidNumber",
    "int_type": "api.validation.invalidNumber",
    "int_from_float": "api.validation.invalidNumber",
    "bool_parsing": "api.validation.invalidValue",
    "bool_type": "api.validation.invalidValue",
    "extra_forbidden": "api.validation.unknownField",
    "json_invalid": "api.errors.invalidJson",
    "model_attributes_type": "api.errors.invalidJson",
    "dict_type": "api.errors.invalidJson",
}

_LOCATION_PREFIXES = ("body", "query", "path", "header", "cookie")


def _message_for(error: Dict[str, Any]) -> str:
    """i18n key for one pydantic error; validators raise ValueError(<key>)."""
    if error.get("type") == "value_error":
        ctx_error = (error.get("ctx") or {}).get("error")
        if ctx_error is not None and str(ctx_error):
            return str(ctx_error)
    if error.get("type") == "value_error" and "email" in str(error.get("msg", "")).lower():
        return "api.validation.invalidEmail"
    return _GENERIC_MESSAGES.get(error.get("type", ""), "api.errors.validationError")


def _field_for(error: Dict[str, Any]) -> str:
    loc = list(error.get("loc") or ())
    if loc and loc[0] in _LOCATION_PREFIXES:
        loc = loc[1:]
    return ".".join(str(part) for part in loc)


def format_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    return [{"field": _field_for(e), "message": _message_for(e)} for e in errors]


def validation_failure(exc: ValidationError) -> ApiError:
    """400 whose message is the first violation (for models validated inside a route)."""
    details = format_validation_errors(exc.errors())
    message = details[0]["message"] if details else "api.errors.validationError"
    return validation_error(message, details)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = format_validation_errors(list(exc.errors()))
    message = details[0]["message"] if details else "api.errors.validationError"
    error = validation_error(message, details)
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        error = not_found()
    elif exc.status_code == 405:
        error = method_not_allowed()
    else:
        error = ApiError(exc.status_code, "HTTP_ERROR", str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=error.to_payload(), headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=internal_error().to_payload())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
