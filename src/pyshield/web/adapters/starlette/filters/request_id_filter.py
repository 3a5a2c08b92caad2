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
"""Request ID filter — assigns X-Request-ID when the client did not send one."""

from __future__ import annotations

from typing import cast

from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.responses import Response

from pyshield.security.random import RandomSource, SystemRandomSource, bytes_to_ascii
from pyshield.web.filters import OncePerRequestFilter
from pyshield.web.ordering import REQUEST_ID_ORDER, order
from pyshield.web.ports.filter import CallNext

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_LENGTH = 32


@order(REQUEST_ID_ORDER)
class RequestIdFilter(OncePerRequestFilter):
    """Generates a random 32-character alphanumeric ``X-Request-ID``.

    The id is written into the request headers (so endpoints and the
    access log see it) and echoed on the response.  Only use behind a
    trusted proxy if clients are allowed to choose their own id.
    """

    def __init__(self, random_source: RandomSource | None = None) -> None:
        self._random = random_source or SystemRandomSource()

    async def do_filter(self, request: Request, call_next: CallNext) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER)
        if not request_id:
            request_id = bytes_to_ascii(self._random.read(REQUEST_ID_LENGTH))
            MutableHeaders(scope=request.scope)[REQUEST_ID_HEADER] = request_id
            # Headers are cached per Request; hand on a fresh view of the scope.
            request = Request(request.scope, request.receive)
        response = cast(Response, await call_next(request))
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
