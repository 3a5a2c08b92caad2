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
"""Cryptographic randomness for token material.

Middleware receives a :class:`RandomSource` through its configuration
instead of reaching for a process-wide generator, so tests can inject a
deterministic or failing source.
"""

from __future__ import annotations

import secrets
from typing import Protocol, runtime_checkable

from pyshield.kernel.exceptions import RandomnessException

_ASCII_CHARSET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"


@runtime_checkable
class RandomSource(Protocol):
    """Source of cryptographically secure random bytes.

    Implementations must be safe to call concurrently from many requests.
    """

    def read(self, n: int) -> bytes: ...


class SystemRandomSource:
    """Reads from the operating system CSPRNG via :mod:`secrets`."""

    def read(self, n: int) -> bytes:
        try:
            return secrets.token_bytes(n)
        except OSError as exc:
            # Never degrade to a non-cryptographic generator.
            raise RandomnessException(
                "Secure random source is unavailable", code="RANDOM_UNAVAILABLE"
            ) from exc


DEFAULT_RANDOM_SOURCE: RandomSource = SystemRandomSource()


def random_noise(n: int, source: RandomSource | None = None) -> bytes:
    """Return *n* random bytes from *source* (the system CSPRNG by default)."""
    data = (source or DEFAULT_RANDOM_SOURCE).read(n)
    if len(data) != n:
        raise RandomnessException(
            f"Random source returned {len(data)} bytes, expected {n}", code="RANDOM_SHORT_READ"
        )
    return data


def bytes_to_ascii(data: bytes) -> str:
    """Map each byte onto ``[A-Za-z0-9]``."""
    return "".join(_ASCII_CHARSET[b % len(_ASCII_CHARSET)] for b in data)
