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
"""Filter ordering — @order decorator, precedence constants, and chain sorting."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, TypeVar

T = TypeVar("T", bound=type)

HIGHEST_PRECEDENCE: int = -(2**31)
LOWEST_PRECEDENCE: int = 2**31 - 1

# Built-in filter slots. Lower runs first (outermost in the chain).
REQUEST_ID_ORDER: int = HIGHEST_PRECEDENCE
REQUEST_CONTEXT_ORDER: int = HIGHEST_PRECEDENCE + 100
REQUEST_LOGGING_ORDER: int = HIGHEST_PRECEDENCE + 200
ERROR_HANDLER_ORDER: int = HIGHEST_PRECEDENCE + 300
CSRF_ORDER: int = -50


def order(value: int) -> Callable[[T], T]:
    """Set the chain position of a filter class.

    Lower value = higher priority (runs earlier).
    Default order for undecorated filters is 0.
    """

    def decorator(cls: T) -> T:
        cls.__pyshield_order__ = value  # type: ignore[attr-defined]
        return cls

    return decorator


def get_order(obj: Any) -> int:
    """Get the order value for a filter class or instance, defaulting to 0."""
    return getattr(obj, "__pyshield_order__", 0)


def sort_filters(filters: Iterable[Any]) -> list[Any]:
    """Return *filters* sorted by their order; ties keep registration order."""
    return sorted(filters, key=get_order)
