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
"""ErrorHandlerFilter — installs a custom error handler for downstream rejections."""

from __future__ import annotations

from typing import Any

from pyshield.context.request_context import RequestContext
from pyshield.web.errors import ERROR_HANDLER_KEY, ErrorHandler
from pyshield.web.filters import OncePerRequestFilter
from pyshield.web.ordering import ERROR_HANDLER_ORDER, order
from pyshield.web.ports.filter import CallNext


@order(ERROR_HANDLER_ORDER)
class ErrorHandlerFilter(OncePerRequestFilter):
    """Makes :func:`pyshield.web.errors.error_response` use *handler* for this request.

    Place it before (lower order than) the filters whose rejections it
    should render, e.g. the CSRF filter.
    """

    def __init__(self, handler: ErrorHandler) -> None:
        self._handler = handler

    async def do_filter(self, request: Any, call_next: CallNext) -> Any:
        RequestContext.of(request).set(ERROR_HANDLER_KEY, self._handler)
        return await call_next(request)
