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
"""RequestContextFilter — initializes RequestContext for each HTTP request.

Runs at highest priority so all downstream filters and endpoints
can access the request context.
"""

from __future__ import annotations

from typing import Any

from pyshield.context.request_context import RequestContext
from pyshield.web.filters import OncePerRequestFilter
from pyshield.web.ordering import REQUEST_CONTEXT_ORDER, order
from pyshield.web.ports.filter import CallNext


@order(REQUEST_CONTEXT_ORDER)
class RequestContextFilter(OncePerRequestFilter):
    """Creates a fresh RequestContext and binds it to the task and the ASGI scope.

    Honors the ``X-Request-ID`` header if present.  Clears the task-local
    context after the response is produced, even on error.
    """

    async def do_filter(self, request: Any, call_next: CallNext) -> Any:
        request_id = request.headers.get("x-request-id")
        ctx = RequestContext.init(request_id=request_id)
        scope = getattr(request, "scope", None)
        if isinstance(scope, dict):
            ctx.attach(scope)
        try:
            return await call_next(request)
        finally:
            RequestContext.clear()
