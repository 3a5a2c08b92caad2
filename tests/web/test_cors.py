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
"""Tests for CORS configuration and middleware integration."""

from __future__ import annotations

import dataclasses

import pytest
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from pyshield.web.adapters.starlette.app import create_app
from pyshield.web.cors import CORSConfig
from pyshield.web.csrf import CsrfConfig

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def hello(request):
    return JSONResponse({"msg": "hello"})


HELLO_ROUTE = Route("/hello", hello, methods=["GET", "POST"])
ORIGIN = "https://app.example"


def _client(cors: CORSConfig, csrf: CsrfConfig | None = None) -> TestClient:
    return TestClient(create_app(routes=[HELLO_ROUTE], cors=cors, csrf=csrf))


# ---------------------------------------------------------------------------
# CORSConfig dataclass tests
# ---------------------------------------------------------------------------


class TestCORSConfigDefaults:
    """Default CORSConfig has sensible values."""

    def test_cors_config_defaults(self):
        cfg = CORSConfig()
        assert cfg.allowed_origins == []
        assert cfg.allowed_methods == ["GET"]
        assert cfg.allowed_headers == ["X-CSRF-Token", "Content-Type"]
        assert cfg.exposed_headers == ["X-CSRF-Token"]
        assert cfg.allow_credentials is False
        assert cfg.max_age == 600

    def test_cors_config_is_frozen(self):
        cfg = CORSConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            cfg.max_age = 10  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Middleware integration
# ---------------------------------------------------------------------------


class TestCORSMiddleware:
    def test_preflight_allows_csrf_header(self):
        client = _client(CORSConfig(allowed_origins=[ORIGIN], allowed_methods=["GET", "POST"]))
        response = client.options(
            "/hello",
            headers={
                "Origin": ORIGIN,
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "X-CSRF-Token",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == ORIGIN
        assert "x-csrf-token" in response.headers["access-control-allow-headers"].lower()
        assert response.headers["access-control-max-age"] == "600"

    def test_preflight_disallowed_origin(self):
        client = _client(CORSConfig(allowed_origins=[ORIGIN], allowed_methods=["GET", "POST"]))
        response = client.options(
            "/hello",
            headers={"Origin": "https://evil.example", "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 400

    def test_simple_request_exposes_csrf_header(self):
        csrf = CsrfConfig(secret=bytes(32), cookie_secure=False)
        client = _client(CORSConfig(allowed_origins=[ORIGIN], allow_credentials=True), csrf=csrf)
        response = client.get("/hello", headers={"Origin": ORIGIN})
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == ORIGIN
        assert response.headers["access-control-allow-credentials"] == "true"
        assert "x-csrf-token" in response.headers["access-control-expose-headers"].lower()
        assert response.headers["x-csrf-token"]

    def test_preflight_is_not_subject_to_csrf(self):
        csrf = CsrfConfig(secret=bytes(32), cookie_secure=False)
        client = _client(CORSConfig(allowed_origins=[ORIGIN], allowed_methods=["POST"]), csrf=csrf)
        response = client.options(
            "/hello",
            headers={"Origin": ORIGIN, "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 200

    def test_no_cors_headers_without_config(self):
        client = TestClient(create_app(routes=[HELLO_ROUTE]))
        response = client.get("/hello", headers={"Origin": ORIGIN})
        assert "access-control-allow-origin" not in response.headers
