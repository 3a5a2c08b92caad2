# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Uniform error responses — RFC 7807 problem details by default.

Every rejection in the toolkit goes through :func:`error_response`, which
dispatches to the error handler installed for the current request (see
``ErrorHandlerFilter``) or to :func:`problem_error_handler`.  Handlers only
receive the status code and the exception; the response body must not
reveal which check failed.
"""

from __future__ import annotations

from collections.abc import Callable
from http import HTTPStatus
from typing import Any

import structlog
from starlette.exceptions import HTTPException
from starlette.responses import JSONResponse, PlainTextResponse, Response

from pyshield.context.request_context import ContextKey, RequestContext
from pyshield.kernel.exceptions import (
    ConfigurationException,
    ForbiddenException,
    InfrastructureException,
    PyShieldException,
    SecurityException,
)

logger = structlog.get_logger("pyshield.web")

ErrorHandler = Callable[[Any, int, BaseException | None], Response]

ERROR_HANDLER_KEY: ContextKey[ErrorHandler] = ContextKey("error handler")

PROBLEM_JSON = "application/problem+json"

# Exception -> HTTP status code mapping (most specific first)
_STATUS_MAP: dict[type, int] = {
    ForbiddenException: 403,
    SecurityException: 401,
    ConfigurationException: 500,
    InfrastructureException: 500,
}


def status_text(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Unknown Status"


def problem_error_handler(request: Any, status_code: int, exc: BaseException | None) -> Response:
    """Respond with ``{"status": ..., "title": ...}`` as ``application/problem+json``."""
    return JSONResponse(
        {"status": status_code, "title": status_text(status_code)},
        status_code=status_code,
        media_type=PROBLEM_JSON,
    )


def text_error_handler(request: Any, status_code: int, exc: BaseException | None) -> Response:
    """Respond with the plain-text reason phrase."""
    return PlainTextResponse(status_text(status_code), status_code=status_code)


def error_response(request: Any, status_code: int, exc: BaseException | None = None) -> Response:
    """Build the error response for *request* using its installed error handler."""
    handler = RequestContext.of(request).get(ERROR_HANDLER_KEY, problem_error_handler)
    return handler(request, status_code, exc)


def status_for(exc: BaseException) -> int:
    """Map an exception to an HTTP status code (500 when unmapped).

    Starlette's ``HTTPException`` keeps its own status code.
    """
    if isinstance(exc, HTTPException):
        return exc.status_code
    for exc_type, status in _STATUS_MAP.items():
        if isinstance(exc, exc_type):
            return status
    return 500


async def global_exception_handler(request: Any, exc: Exception) -> Response:
    """Starlette exception handler rendering any exception through :func:`error_response`."""
    status = status_for(exc)
    if status >= 500:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            error_type=type(exc).__name__,
            code=exc.code if isinstance(exc, PyShieldException) else None,
        )
    return error_response(request, status, exc)
