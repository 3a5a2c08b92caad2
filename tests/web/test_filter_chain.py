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
"""Tests for WebFilterChainMiddleware — ordering, short-circuit, conditional skip."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from pyshield.web.adapters.starlette.filter_chain import WebFilterChainMiddleware
from pyshield.web.filters import ConditionalFilter, OncePerRequestFilter, compose, path_matches
from pyshield.web.ordering import HIGHEST_PRECEDENCE, get_order, order, sort_filters


# ---------------------------------------------------------------------------
# Test filters
# ---------------------------------------------------------------------------

@order(HIGHEST_PRECEDENCE + 10)
class HeaderFilter(OncePerRequestFilter):
    """Adds X-Filter-A header to every response."""

    async def do_filter(self, request, call_next):
        response = await call_next(request)
        response.headers["X-Filter-A"] = "applied"
        return response


@order(HIGHEST_PRECEDENCE + 20)
class TraceFilter(OncePerRequestFilter):
    """Records its position relative to HeaderFilter."""

    async def do_filter(self, request, call_next):
        response = await call_next(request)
        response.headers["X-Seen-A-Before-B"] = str("x-filter-a" in response.headers)
        return response


@order(5)
class ApiOnlyFilter(OncePerRequestFilter):
    """Only applies to /api/* paths."""

    url_patterns = ["/api/*"]
    exclude_patterns = ["/api/health"]

    async def do_filter(self, request, call_next):
        response = await call_next(request)
        response.headers["X-Api-Filter"] = "applied"
        return response


@order(10)
class ShortCircuitFilter(OncePerRequestFilter):
    """Returns 429 without calling next — simulates rate limiting."""

    async def do_filter(self, request, call_next):
        return JSONResponse({"error": "rate limited"}, status_code=429)


class MarkerFilter(OncePerRequestFilter):
    def __init__(self, name: str) -> None:
        self.name = name

    async def do_filter(self, request, call_next):
        response = await call_next(request)
        response.headers[f"X-Marker-{self.name}"] = "1"
        return response


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _ok_handler(request: Request) -> PlainTextResponse:
    return PlainTextResponse("ok")


async def _echo_body(request: Request) -> PlainTextResponse:
    return PlainTextResponse((await request.body()).decode())


def _make_app(*filters) -> Starlette:
    return Starlette(
        routes=[
            Route("/", _ok_handler),
            Route("/api/items", _ok_handler),
            Route("/api/health", _ok_handler),
            Route("/echo", _echo_body, methods=["POST"]),
        ],
        middleware=[Middleware(WebFilterChainMiddleware, filters=sort_filters(filters))],
    )


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestFilterChain:
    def test_filters_apply_to_response(self):
        client = TestClient(_make_app(TraceFilter(), HeaderFilter()))
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == "ok"
        assert response.headers["x-filter-a"] == "applied"
        # HeaderFilter has the lower order, so it wraps TraceFilter.
        assert response.headers["x-seen-a-before-b"] == "False"

    def test_url_patterns_restrict_filter(self):
        client = TestClient(_make_app(ApiOnlyFilter()))
        assert "x-api-filter" not in client.get("/").headers
        assert client.get("/api/items").headers["x-api-filter"] == "applied"

    def test_exclude_patterns_win(self):
        client = TestClient(_make_app(ApiOnlyFilter()))
        assert "x-api-filter" not in client.get("/api/health").headers

    def test_short_circuit_skips_endpoint(self):
        client = TestClient(_make_app(HeaderFilter(), ShortCircuitFilter()))
        response = client.get("/")
        assert response.status_code == 429
        assert response.headers["x-filter-a"] == "applied"

    def test_request_body_reaches_endpoint(self):
        client = TestClient(_make_app(HeaderFilter()))
        assert client.post("/echo", content=b"payload").text == "payload"

    def test_empty_chain(self):
        client = TestClient(_make_app())
        assert client.get("/").text == "ok"


class TestOrdering:
    def test_get_order_defaults_to_zero(self):
        assert get_order(MarkerFilter("a")) == 0

    def test_get_order_from_decorator(self):
        assert get_order(HeaderFilter()) == HIGHEST_PRECEDENCE + 10
        assert get_order(ApiOnlyFilter) == 5

    def test_sort_is_stable(self):
        a, b = MarkerFilter("a"), MarkerFilter("b")
        header = HeaderFilter()
        assert sort_filters([a, header, b]) == [header, a, b]


class TestPathMatches:
    def test_star_crosses_segments(self):
        assert path_matches(["/api/*"], "/api/v1/items")

    def test_case_sensitive(self):
        assert not path_matches(["/API/*"], "/api/items")

    def test_no_patterns(self):
        assert not path_matches([], "/anything")


class TestConditionalFilter:
    def test_runs_sub_chain_when_condition_holds(self):
        conditional = ConditionalFilter(
            lambda request: request.url.path.startswith("/api/"),
            MarkerFilter("one"),
            MarkerFilter("two"),
        )
        client = TestClient(_make_app(conditional))

        api = client.get("/api/items")
        assert api.headers["x-marker-one"] == "1"
        assert api.headers["x-marker-two"] == "1"

        root = client.get("/")
        assert "x-marker-one" not in root.headers
        assert root.text == "ok"

    def test_sub_filters_keep_their_patterns(self):
        conditional = ConditionalFilter(lambda request: True, ApiOnlyFilter())
        client = TestClient(_make_app(conditional))
        assert "x-api-filter" not in client.get("/").headers
        assert client.get("/api/items").headers["x-api-filter"] == "applied"

    def test_requires_a_filter(self):
        with pytest.raises(ValueError):
            ConditionalFilter(lambda request: True)


class TestCompose:
    @pytest.mark.asyncio
    async def test_first_filter_is_outermost(self):
        seen: list[str] = []

        class Recorder(OncePerRequestFilter):
            def __init__(self, name: str) -> None:
                self.name = name

            async def do_filter(self, request, call_next):
                seen.append(self.name)
                return await call_next(request)

        async def endpoint(request):
            seen.append("endpoint")
            return "done"

        chain = compose([Recorder("outer"), Recorder("inner")], endpoint)
        request = SimpleNamespace(url=SimpleNamespace(path="/"))

        assert await chain(request) == "done"
        assert seen == ["outer", "inner", "endpoint"]
