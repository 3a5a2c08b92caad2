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
"""CSRF configuration, the request-scoped token, and its lookup.

Both configurations validate eagerly in ``__post_init__``: a misconfigured
CSRF filter silently disables protection, so construction fails with
:class:`CsrfConfigurationException` instead.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from markupsafe import Markup, escape

from pyshield.context.request_context import ContextKey, RequestContext
from pyshield.core.config import config_properties
from pyshield.kernel.exceptions import CsrfConfigurationException
from pyshield.security.csrf import TOKEN_LENGTH, decode_token
from pyshield.security.random import RandomSource, SystemRandomSource

COOKIE_MAX_AGE: int = 365 * 24 * 60 * 60
"""Max-Age of the masked-variant cookie in seconds (one year)."""

HOST_PREFIX = "__Host-"
SECURE_PREFIX = "__Secure-"

_SAME_SITE_VALUES = frozenset({"lax", "strict", "none"})

ExemptFunc = Callable[[Any], bool]
SessionFunc = Callable[[Any], str | None]


def _fail(message: str) -> None:
    raise CsrfConfigurationException(f"csrf: {message}", code="CSRF_CONFIG")


@dataclass(frozen=True)
class CsrfConfig:
    """Configuration of the double-submit cookie (masked token) filter.

    Attributes:
        secret: 32-byte masking secret.  Never sent to the client.
        cookie_name: Name of the cookie holding the raw token.
        field_name: Name of the form field the client may post the token in.
        exempt_paths: URL path globs exempt from verification.
        exempt_func: Predicate marking additional requests exempt.
        random_source: Source of nonces and raw tokens.
    """

    secret: bytes
    cookie_name: str = "csrf"
    field_name: str = "csrf"
    cookie_path: str = "/"
    cookie_domain: str = ""
    cookie_secure: bool = True
    cookie_http_only: bool = True
    cookie_same_site: str = "lax"
    exempt_paths: Sequence[str] = ()
    exempt_func: ExemptFunc | None = None
    random_source: RandomSource = field(default_factory=SystemRandomSource)

    def __post_init__(self) -> None:
        if not self.secret:
            _fail("no secret")
        if len(self.secret) != TOKEN_LENGTH:
            _fail(f"secret must be {TOKEN_LENGTH} bytes")
        if not self.cookie_name:
            _fail("no cookie name")
        if not self.field_name:
            _fail("no field name")

        same_site = self.cookie_same_site.lower()
        if same_site not in _SAME_SITE_VALUES:
            _fail(f"invalid SameSite value {self.cookie_same_site!r}")
        if same_site == "none" and not self.cookie_secure:
            _fail("SameSite=None requires Secure")

        if self.cookie_name.startswith(HOST_PREFIX):
            if not self.cookie_secure:
                _fail(f"{HOST_PREFIX} cookie requires Secure")
            if self.cookie_domain:
                _fail(f"{HOST_PREFIX} cookie must not set Domain")
            if self.cookie_path != "/":
                _fail(f"{HOST_PREFIX} cookie requires Path=/")
        elif self.cookie_name.startswith(SECURE_PREFIX) and not self.cookie_secure:
            _fail(f"{SECURE_PREFIX} cookie requires Secure")


@dataclass(frozen=True)
class HmacCsrfConfig:
    """Configuration of the signed (HMAC) token filter.

    With a ``session_func`` tokens are bound to the session id and expire
    after ``expires``.  Without one, sessionless signed random tokens are
    issued and ``expires`` is ignored.
    """

    secret: bytes | str
    field_name: str = "csrf"
    expires: timedelta | None = None
    session_func: SessionFunc | None = None
    exempt_paths: Sequence[str] = ()
    exempt_func: ExemptFunc | None = None
    random_source: RandomSource = field(default_factory=SystemRandomSource)

    def __post_init__(self) -> None:
        if not self.secret:
            _fail("no secret")
        if not self.field_name:
            _fail("no field name")
        if self.session_func is not None and not self.expires:
            _fail("no expires")

    @property
    def session_bound(self) -> bool:
        return self.session_func is not None


@config_properties(prefix="pyshield.security.csrf")
@dataclass
class CsrfProperties:
    """File/env bound CSRF settings (``pyshield.security.csrf.*``).

    ``secret`` is URL-safe base64; the masked variant requires it to
    decode to exactly 32 bytes.
    """

    secret: str = ""
    cookie_name: str = "csrf"
    field_name: str = "csrf"
    cookie_path: str = "/"
    cookie_domain: str = ""
    cookie_secure: bool = True
    cookie_http_only: bool = True
    cookie_same_site: str = "lax"
    exempt_paths: list[str] = field(default_factory=list)
    expires_seconds: int = 3600

    def to_config(self, exempt_func: ExemptFunc | None = None) -> CsrfConfig:
        """Build a validated masked-variant configuration."""
        secret = decode_token(self.secret) or b""
        return CsrfConfig(
            secret=secret,
            cookie_name=self.cookie_name,
            field_name=self.field_name,
            cookie_path=self.cookie_path,
            cookie_domain=self.cookie_domain,
            cookie_secure=self.cookie_secure,
            cookie_http_only=self.cookie_http_only,
            cookie_same_site=self.cookie_same_site,
            exempt_paths=tuple(self.exempt_paths),
            exempt_func=exempt_func,
        )

    def to_hmac_config(
        self,
        session_func: SessionFunc | None = None,
        exempt_func: ExemptFunc | None = None,
    ) -> HmacCsrfConfig:
        """Build a validated signed-variant configuration."""
        return HmacCsrfConfig(
            secret=self.secret,
            field_name=self.field_name,
            expires=timedelta(seconds=self.expires_seconds) if self.expires_seconds else None,
            session_func=session_func,
            exempt_paths=tuple(self.exempt_paths),
            exempt_func=exempt_func,
        )


@dataclass(frozen=True)
class CsrfToken:
    """The token issued for the current request, for embedding in responses."""

    value: str
    field_name: str

    def __str__(self) -> str:
        return self.value

    def hidden_input(self) -> Markup:
        """``<input type="hidden">`` markup carrying the token, ready for a form."""
        return Markup('<input type="hidden" name="{}" value="{}">').format(
            escape(self.field_name), escape(self.value)
        )


CSRF_TOKEN_KEY: ContextKey[CsrfToken] = ContextKey("csrf token")


def set_csrf_token(request: Any, token: CsrfToken) -> None:
    RequestContext.of(request).set(CSRF_TOKEN_KEY, token)


def get_csrf_token(request: Any | None = None) -> CsrfToken | None:
    """Return the CSRF token issued for *request* (or the current request).

    ``None`` when no CSRF filter ran, or the signed variant found no session.
    """
    if request is not None:
        return RequestContext.of(request).get(CSRF_TOKEN_KEY)
    ctx = RequestContext.current()
    return ctx.get(CSRF_TOKEN_KEY) if ctx is not None else None
