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
"""CSRF token codec — masking, verification, and signed tokens.

Two independent token designs live here:

* **Masked tokens** (double-submit cookie). A 32-byte raw token is stored
  in a cookie. Every response carries ``nonce || (token ^ nonce ^ secret)``
  with a fresh nonce, so the transmitted value never repeats and
  compression oracles (BREACH) cannot recover it.
* **Signed tokens** (HMAC). ``expiry || HMAC-SHA256(secret, expiry || session_id)``
  bound to a session and a deadline, or ``random || HMAC(secret, random)``
  when there is no session. No server-side state beyond the secret.

All comparisons of secret-dependent values use :func:`hmac.compare_digest`.
Verification functions return ``False`` on any malformed input and never raise.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import struct
import time
from datetime import timedelta

from pyshield.security.random import RandomSource, random_noise

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
TOKEN_LENGTH: int = 32
"""Length in bytes of a raw token, a mask nonce, and a masked-variant secret."""

MASKED_TOKEN_LENGTH: int = 2 * TOKEN_LENGTH

CSRF_HEADER_NAME: str = "X-CSRF-Token"
"""Request header the client echoes the token in; response header it is issued in."""

SAFE_METHODS: frozenset[str] = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})
"""HTTP methods that do not require CSRF validation."""

_EXPIRY = struct.Struct("<qq")
_MAC_LENGTH = hashlib.sha256().digest_size

SIGNED_TOKEN_LENGTH: int = _EXPIRY.size + _MAC_LENGTH
SESSIONLESS_TOKEN_LENGTH: int = TOKEN_LENGTH + _MAC_LENGTH

_NANOS_PER_SECOND = 1_000_000_000


def is_safe_method(method: str) -> bool:
    """Return ``True`` for read-only methods (GET, HEAD, OPTIONS, TRACE)."""
    return method.upper() in SAFE_METHODS


# ---------------------------------------------------------------------------
# Wire encoding
# ---------------------------------------------------------------------------
def encode_token(data: bytes) -> str:
    """Encode token bytes as unpadded URL-safe base64 (cookie and header safe)."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def decode_token(value: str | None) -> bytes | None:
    """Decode URL-safe base64, padded or not.  ``None`` if *value* is malformed."""
    if not value:
        return None
    try:
        raw = value.strip().encode("ascii")
        return base64.b64decode(raw + b"=" * (-len(raw) % 4), altchars=b"-_", validate=True)
    except (UnicodeEncodeError, binascii.Error, ValueError):
        return None


# ---------------------------------------------------------------------------
# Masked tokens
# ---------------------------------------------------------------------------
def _xor_into(buf: bytearray, start: int, key: bytes) -> None:
    for i, k in enumerate(key):
        buf[start + i] ^= k


def _check_mask_args(secret: bytes, buf: bytearray) -> None:
    if len(buf) != MASKED_TOKEN_LENGTH:
        raise ValueError(f"mask buffer must be {MASKED_TOKEN_LENGTH} bytes, got {len(buf)}")
    if len(secret) != TOKEN_LENGTH:
        raise ValueError(f"mask secret must be {TOKEN_LENGTH} bytes, got {len(secret)}")


def mask(secret: bytes, buf: bytearray, random: RandomSource | None = None) -> None:
    """Mask the token half of ``buf = nonce || token`` in place.

    The nonce half is overwritten with fresh random bytes, then the token
    half is XORed with the nonce and then with the secret.
    """
    _check_mask_args(secret, buf)
    buf[:TOKEN_LENGTH] = random_noise(TOKEN_LENGTH, random)
    _xor_into(buf, TOKEN_LENGTH, bytes(buf[:TOKEN_LENGTH]))
    _xor_into(buf, TOKEN_LENGTH, secret)


def unmask(secret: bytes, buf: bytearray) -> None:
    """Invert :func:`mask` in place: XOR with the secret, then with the nonce."""
    _check_mask_args(secret, buf)
    _xor_into(buf, TOKEN_LENGTH, secret)
    _xor_into(buf, TOKEN_LENGTH, bytes(buf[:TOKEN_LENGTH]))


def mask_token(secret: bytes, token: bytes, random: RandomSource | None = None) -> bytes:
    """Return a freshly masked copy of *token* as ``nonce || masked``."""
    if len(token) != TOKEN_LENGTH:
        raise ValueError(f"token must be {TOKEN_LENGTH} bytes, got {len(token)}")
    buf = bytearray(TOKEN_LENGTH) + bytearray(token)
    mask(secret, buf, random)
    return bytes(buf)


def verify(secret: bytes, real_token: str | None, sent_token: str | None) -> bool:
    """Check a masked token sent by the client against the real (cookie) token.

    Args:
        secret: The 32-byte masking secret.
        real_token: Base64 raw token from the cookie.
        sent_token: Base64 masked token from the header or form.

    Returns:
        ``True`` only if the sent token unmasks to exactly the real token.
    """
    real = decode_token(real_token)
    sent = decode_token(sent_token)
    if real is None or len(real) != TOKEN_LENGTH:
        return False
    if sent is None or len(sent) != MASKED_TOKEN_LENGTH:
        return False
    if len(secret) != TOKEN_LENGTH:
        return False

    buf = bytearray(sent)
    unmask(secret, buf)
    return hmac.compare_digest(bytes(buf[TOKEN_LENGTH:]), real)


# ---------------------------------------------------------------------------
# Signed tokens
# ---------------------------------------------------------------------------
def _as_bytes(value: bytes | str) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def _sign(secret: bytes | str, *parts: bytes) -> bytes:
    mac = hmac.new(_as_bytes(secret), digestmod=hashlib.sha256)
    for part in parts:
        mac.update(part)
    return mac.digest()


def create_token(
    secret: bytes | str,
    session_id: str,
    duration: timedelta,
    now_ns: int | None = None,
) -> bytes:
    """Create a session-bound signed token that expires after *duration*.

    Layout: ``LE64(expiry seconds) || LE64(expiry sub-second nanos) || mac``
    where ``mac = HMAC-SHA256(secret, expiry bytes || session_id)``.
    """
    now = time.time_ns() if now_ns is None else now_ns
    delta_ns = (duration.days * 86_400 + duration.seconds) * _NANOS_PER_SECOND + duration.microseconds * 1_000
    seconds, nanos = divmod(now + delta_ns, _NANOS_PER_SECOND)
    expiry = _EXPIRY.pack(seconds, nanos)
    return expiry + _sign(secret, expiry, session_id.encode("utf-8"))


def verify_token(
    secret: bytes | str,
    token: bytes | None,
    session_id: str,
    now_ns: int | None = None,
) -> bool:
    """Verify a token from :func:`create_token` for *session_id*.

    The signature is checked before the expiry is decoded, so the deadline
    is only ever read from a MAC-authenticated region.
    """
    if token is None or len(token) != SIGNED_TOKEN_LENGTH:
        return False

    expiry = token[: _EXPIRY.size]
    expected = _sign(secret, expiry, session_id.encode("utf-8"))
    if not hmac.compare_digest(token[_EXPIRY.size :], expected):
        return False

    seconds, nanos = _EXPIRY.unpack(expiry)
    now = time.time_ns() if now_ns is None else now_ns
    return now < seconds * _NANOS_PER_SECOND + nanos


def create_sessionless_token(secret: bytes | str, random: RandomSource | None = None) -> bytes:
    """Create ``random32 || HMAC-SHA256(secret, random32)``."""
    payload = random_noise(TOKEN_LENGTH, random)
    return payload + _sign(secret, payload)


def verify_sessionless_token(secret: bytes | str, token: bytes | None) -> bool:
    """Verify a token from :func:`create_sessionless_token`."""
    if token is None or len(token) != SESSIONLESS_TOKEN_LENGTH:
        return False
    payload = token[:TOKEN_LENGTH]
    return hmac.compare_digest(token[TOKEN_LENGTH:], _sign(secret, payload))


def generate_raw_token(random: RandomSource | None = None) -> bytes:
    """Generate a new 32-byte raw token for a cookie epoch."""
    return random_noise(TOKEN_LENGTH, random)
