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
"""pyshield web — CSRF protection and composable request filters.

Framework-agnostic types (configuration, filters, errors) are exported
directly.  Default adapter (Starlette) exports are re-exported for
convenience.
"""

# Framework-agnostic exports
# Default adapter (Starlette) re-exports
from pyshield.web.adapters.starlette import (
    CsrfFilter,
    ErrorHandlerFilter,
    HmacCsrfFilter,
    RequestContextFilter,
    RequestIdFilter,
    RequestLoggingFilter,
    WebFilterChainMiddleware,
    create_app,
)
from pyshield.web.cors import CORSConfig
from pyshield.web.csrf import (
    CsrfConfig,
    CsrfProperties,
    CsrfToken,
    HmacCsrfConfig,
    get_csrf_token,
)
from pyshield.web.errors import (
    ErrorHandler,
    error_response,
    problem_error_handler,
    text_error_handler,
)
from pyshield.web.filters import ConditionalFilter, OncePerRequestFilter, compose
from pyshield.web.ordering import order
from pyshield.web.origin import Origin, parse_origin, same_origin
from pyshield.web.ports.filter import WebFilter

__all__ = [
    # Framework-agnostic
    "CORSConfig",
    "ConditionalFilter",
    "CsrfConfig",
    "CsrfProperties",
    "CsrfToken",
    "ErrorHandler",
    "HmacCsrfConfig",
    "OncePerRequestFilter",
    "Origin",
    "WebFilter",
    "compose",
    "error_response",
    "get_csrf_token",
    "order",
    "parse_origin",
    "problem_error_handler",
    "same_origin",
    "text_error_handler",
    # Starlette adapter
    "CsrfFilter",
    "ErrorHandlerFilter",
    "HmacCsrfFilter",
    "RequestContextFilter",
    "RequestIdFilter",
    "RequestLoggingFilter",
    "WebFilterChainMiddleware",
    "create_app",
]
