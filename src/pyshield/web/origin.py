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
"""Origin helpers for the HTTPS man-in-the-middle check.

An attacker who intercepts a plain-HTTP request before the upgrade to
HTTPS can capture a token and replay it from another origin.  For unsafe
requests over HTTPS the declared source origin (``Origin``, else
``Referer``) must therefore equal the target origin of the request.
"""

from __future__ import annotations

from typing import Any, NamedTuple
from urllib.parse import urlsplit


class Origin(NamedTuple):
    scheme: str
    host: str


def parse_origin(value: str | None) -> Origin | None:
    """Parse the scheme and host of a URL; ``None`` if either is missing."""
    if not value or value == "null":
        return None
    try:
        parts = urlsplit(value.strip())
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    # netloc keeps an explicit port, like the Host header does.
    host = parts.netloc.rsplit("@", 1)[-1]
    return Origin(parts.scheme.lower(), host.lower())


def source_origin(request: Any) -> Origin | None:
    """Origin the request claims to come from: ``Origin``, falling back to ``Referer``."""
    headers = request.headers
    origin = headers.get("origin")
    if origin:
        return parse_origin(origin)
    return parse_origin(headers.get("referer"))


def target_origin(request: Any) -> Origin:
    """Origin the request was sent to: URL scheme plus ``X-Forwarded-Host`` or ``Host``."""
    headers = request.headers
    host = headers.get("x-forwarded-host", "").split(",", 1)[0].strip()
    if not host:
        host = headers.get("host") or request.url.netloc
    return Origin(str(request.url.scheme).lower(), host.lower())


def same_origin(source: Origin | None, target: Origin | None) -> bool:
    """Scheme and host must both match; a missing origin never matches."""
    if source is None or target is None:
        return False
    return source.scheme == target.scheme and source.host == target.host
