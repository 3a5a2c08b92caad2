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
"""CSRF filters — masked double-submit cookie and HMAC signed tokens.

Both filters run the same per-request protocol:

1. **Exempt check**: safe methods (GET, HEAD, OPTIONS, TRACE), paths
   matching ``exempt_paths`` and requests accepted by ``exempt_func`` skip
   to step 4.  Exempt endpoints must not have side effects.
2. **Origin check**: over HTTPS, ``Origin`` (else ``Referer``) must have
   the same scheme and host as the request target.  This stops a token
   captured from a plain-HTTP request before the upgrade from being
   replayed cross-origin.
3. **Token check**: the token is read from the ``X-CSRF-Token`` header,
   else the configured urlencoded form field, else the multipart field,
   and verified against the server-held value.
4. **Issuance**: a fresh token is stored in the request context (see
   :func:`pyshield.web.csrf.get_csrf_token`) and sent in the
   ``X-CSRF-Token`` response header.

Any failure in steps 2-3 short-circuits with 403 Forbidden; the endpoint is
not invoked and the response is the same whichever check failed.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request
from starlette.responses import Response

from pyshield.kernel.exceptions import CsrfConfigurationException, CsrfVerificationException
from pyshield.security.csrf import (
    CSRF_HEADER_NAME,
    TOKEN_LENGTH,
    create_sessionless_token,
    create_token,
    decode_token,
    encode_token,
    generate_raw_token,
    is_safe_method,
    mask_token,
    verify,
    verify_sessionless_token,
    verify_token,
)
from pyshield.web.csrf import (
    COOKIE_MAX_AGE,
    CsrfConfig,
    CsrfToken,
    ExemptFunc,
    HmacCsrfConfig,
    set_csrf_token,
)
from pyshield.web.errors import error_response
from pyshield.web.filters import OncePerRequestFilter, path_matches
from pyshield.web.ordering import CSRF_ORDER, order
from pyshield.web.origin import same_origin, source_origin, target_origin
from pyshield.web.ports.filter import CallNext

logger = structlog.get_logger("pyshield.security.csrf")

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def _replaying(request: Request, body: bytes) -> Request:
    """Return a request over the same scope whose body stream replays *body*."""
    replayed = False

    async def receive() -> Any:
        nonlocal replayed
        if not replayed:
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await request.receive()

    return Request(request.scope, receive)


@order(CSRF_ORDER)
class _CsrfFilterBase(OncePerRequestFilter):
    """Exemption, origin check, token extraction and rejection shared by both variants."""

    def __init__(
        self,
        field_name: str,
        exempt_paths: Sequence[str] = (),
        exempt_func: ExemptFunc | None = None,
    ) -> None:
        self._field_name = field_name
        self._exempt_paths = tuple(exempt_paths)
        self._exempt_func = exempt_func

    def is_exempt(self, request: Any) -> bool:
        if is_safe_method(request.method):
            return True
        if self._exempt_paths and path_matches(self._exempt_paths, request.url.path):
            return True
        return self._exempt_func is not None and bool(self._exempt_func(request))

    @staticmethod
    def origin_allowed(request: Any) -> bool:
        """Plain-HTTP requests pass; HTTPS requests need a same-origin Origin/Referer."""
        if request.url.scheme != "https":
            return True
        return same_origin(source_origin(request), target_origin(request))

    async def extract_token(self, request: Any) -> tuple[str | None, Any]:
        """Return the client-sent token and the request to pass downstream.

        Reading a form consumes the body, so in that case the returned
        request replays it for the endpoint.
        """
        header_token = request.headers.get(CSRF_HEADER_NAME)
        if header_token:
            return header_token, request

        content_type = request.headers.get("content-type", "").split(";", 1)[0].strip().lower()
        if content_type not in _FORM_CONTENT_TYPES or not isinstance(request, Request):
            return None, request

        body = await request.body()
        try:
            form = await request.form()
        except (HTTPException, MultiPartException) as exc:
            # An unparseable form carries no token.
            logger.debug("csrf_form_unreadable", path=request.url.path, error_type=type(exc).__name__)
            return None, _replaying(request, body)
        try:
            value = form.get(self._field_name)
        finally:
            await form.close()

        token = value if isinstance(value, str) and value else None
        return token, _replaying(request, body)

    def reject(self, request: Any, reason: str) -> Response:
        # The reason is for operators only; the response is identical for every cause.
        logger.debug("csrf_rejected", reason=reason, method=request.method, path=request.url.path)
        response = error_response(
            request, 403, CsrfVerificationException("CSRF verification failed", code="CSRF_FORBIDDEN")
        )
        response.headers.add_vary_header("Cookie")
        return response


class CsrfFilter(_CsrfFilterBase):
    """Double-submit cookie protection with per-response masked tokens.

    The raw 32-byte token lives in the ``config.cookie_name`` cookie.  It is
    generated when the cookie is absent or malformed and otherwise reused,
    so ``Set-Cookie`` is only sent on regeneration and the cookie's max-age
    is not reset on every request.  The token sent to the client is masked
    with a fresh nonce on every response.

    Raises:
        CsrfConfigurationException: if *config* is not a :class:`CsrfConfig`.
    """

    def __init__(self, config: CsrfConfig) -> None:
        if not isinstance(config, CsrfConfig):
            raise CsrfConfigurationException("csrf: CsrfFilter requires a CsrfConfig", code="CSRF_CONFIG")
        super().__init__(config.field_name, config.exempt_paths, config.exempt_func)
        self._config = config

    @property
    def config(self) -> CsrfConfig:
        return self._config

    async def do_filter(self, request: Any, call_next: CallNext) -> Any:
        cfg = self._config

        real_token = decode_token(request.cookies.get(cfg.cookie_name))
        regenerate = real_token is None or len(real_token) != TOKEN_LENGTH
        if regenerate:
            real_token = generate_raw_token(cfg.random_source)

        if not self.is_exempt(request):
            if not self.origin_allowed(request):
                return self.reject(request, "origin_mismatch")
            if regenerate:
                return self.reject(request, "missing_cookie")
            sent_token, request = await self.extract_token(request)
            if not verify(cfg.secret, encode_token(real_token), sent_token):
                return self.reject(request, "invalid_token")

        masked = encode_token(mask_token(cfg.secret, real_token, cfg.random_source))
        set_csrf_token(request, CsrfToken(masked, cfg.field_name))

        response = await call_next(request)
        response.headers[CSRF_HEADER_NAME] = masked
        response.headers.add_vary_header("Cookie")
        if regenerate:
            response.set_cookie(
                key=cfg.cookie_name,
                value=encode_token(real_token),
                max_age=COOKIE_MAX_AGE,
                path=cfg.cookie_path,
                domain=cfg.cookie_domain or None,
                secure=cfg.cookie_secure,
                httponly=cfg.cookie_http_only,
                samesite=cfg.cookie_same_site.lower(),  # type: ignore[arg-type]
            )
        return response


class HmacCsrfFilter(_CsrfFilterBase):
    """Stateless signed-token protection.

    Session-bound mode (``config.session_func`` set): tokens embed an expiry
    and are signed over the session id.  Requests without a session are
    rejected unless exempt, and exempt requests without a session get no
    token.  Sessionless mode: tokens are signed random values.

    Raises:
        CsrfConfigurationException: if *config* is not a :class:`HmacCsrfConfig`.
    """

    def __init__(self, config: HmacCsrfConfig) -> None:
        if not isinstance(config, HmacCsrfConfig):
            raise CsrfConfigurationException("csrf: HmacCsrfFilter requires a HmacCsrfConfig", code="CSRF_CONFIG")
        super().__init__(config.field_name, config.exempt_paths, config.exempt_func)
        self._config = config

    @property
    def config(self) -> HmacCsrfConfig:
        return self._config

    def _verify(self, sent_token: str | None, session_id: str | None) -> bool:
        cfg = self._config
        token = decode_token(sent_token)
        if cfg.session_bound:
            return session_id is not None and verify_token(cfg.secret, token, session_id)
        return verify_sessionless_token(cfg.secret, token)

    def _issue(self, session_id: str | None) -> str | None:
        cfg = self._config
        if not cfg.session_bound:
            return encode_token(create_sessionless_token(cfg.secret, cfg.random_source))
        if session_id and cfg.expires is not None:
            return encode_token(create_token(cfg.secret, session_id, cfg.expires))
        return None

    async def do_filter(self, request: Any, call_next: CallNext) -> Any:
        cfg = self._config
        session_id = cfg.session_func(request) if cfg.session_func is not None else None

        if not self.is_exempt(request):
            if not self.origin_allowed(request):
                return self.reject(request, "origin_mismatch")
            if cfg.session_bound and not session_id:
                return self.reject(request, "no_session")
            sent_token, request = await self.extract_token(request)
            if not self._verify(sent_token, session_id):
                return self.reject(request, "invalid_token")

        issued = self._issue(session_id)
        if issued is not None:
            set_csrf_token(request, CsrfToken(issued, cfg.field_name))

        response = await call_next(request)
        if issued is not None:
            response.headers[CSRF_HEADER_NAME] = issued
        response.headers.add_vary_header("Cookie")
        return response


def csrf_filter_for(config: CsrfConfig | HmacCsrfConfig) -> CsrfFilter | HmacCsrfFilter:
    """Build the filter matching the configuration's variant."""
    if isinstance(config, CsrfConfig):
        return CsrfFilter(config)
    if isinstance(config, HmacCsrfConfig):
        return HmacCsrfFilter(config)
    raise CsrfConfigurationException(f"csrf: unsupported configuration {type(config).__name__}", code="CSRF_CONFIG")
