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
"""pyshield application factory built on Starlette."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import structlog
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import BaseRoute

from pyshield.web.adapters.starlette.filter_chain import WebFilterChainMiddleware
from pyshield.web.adapters.starlette.filters import (
    RequestContextFilter,
    RequestIdFilter,
    RequestLoggingFilter,
    csrf_filter_for,
)
from pyshield.web.errors import global_exception_handler
from pyshield.web.ordering import sort_filters
from pyshield.web.ports.filter import WebFilter

if TYPE_CHECKING:
    from pyshield.web.cors import CORSConfig
    from pyshield.web.csrf import CsrfConfig, HmacCsrfConfig

logger = structlog.get_logger("pyshield.web")


def build_filters(
    filters: Sequence[WebFilter] = (),
    csrf: CsrfConfig | HmacCsrfConfig | None = None,
    request_logging: bool = True,
) -> list[WebFilter]:
    """Assemble the built-in filters, the CSRF filter and *filters*, sorted by ``@order``.

    Raises:
        CsrfConfigurationException: if *csrf* is invalid for its variant.
    """
    chain: list[WebFilter] = [RequestIdFilter(), RequestContextFilter()]
    if request_logging:
        chain.append(RequestLoggingFilter())
    if csrf is not None:
        chain.append(csrf_filter_for(csrf))
    chain.extend(filters)
    return sort_filters(chain)


def create_app(
    routes: Sequence[BaseRoute] = (),
    filters: Sequence[WebFilter] = (),
    csrf: CsrfConfig | HmacCsrfConfig | None = None,
    cors: CORSConfig | None = None,
    debug: bool = False,
    request_logging: bool = True,
    lifespan: Any = None,
) -> Starlette:
    """Create a Starlette application wrapped in the pyshield filter chain.

    Includes:
    - WebFilter chain (request id, request context, request logging,
      CSRF protection when ``csrf`` is given, + user filters)
    - Starlette CORS middleware (when ``cors`` is given), outermost so
      preflights are answered before CSRF runs
    - Global exception handler rendering through the request's error handler

    Construction fails fast on invalid CSRF configuration; the application
    never starts serving without the protection it was configured with.
    """
    chain = build_filters(filters, csrf=csrf, request_logging=request_logging)

    middleware: list[Middleware] = []
    if cors is not None:
        middleware.append(
            Middleware(
                CORSMiddleware,
                allow_origins=cors.allowed_origins,
                allow_methods=cors.allowed_methods,
                allow_headers=cors.allowed_headers,
                allow_credentials=cors.allow_credentials,
                expose_headers=cors.exposed_headers,
                max_age=cors.max_age,
            )
        )
    middleware.append(Middleware(WebFilterChainMiddleware, filters=chain))

    app = Starlette(
        debug=debug,
        middleware=middleware,
        routes=list(routes),
        lifespan=lifespan,
    )
    app.state.pyshield_filters = chain
    app.add_exception_handler(Exception, global_exception_handler)

    logger.debug("app_created", filters=[type(f).__name__ for f in chain], cors=cors is not None)
    return app
