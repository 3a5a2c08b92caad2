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
"""OncePerRequestFilter and ConditionalFilter — composable WebFilter building blocks.

Framework-agnostic: accesses ``request.url.path`` via attribute protocol
so no Starlette import is needed.
"""

from __future__ import annotations

import abc
from collections.abc import Callable, Iterable, Sequence
from fnmatch import fnmatchcase
from typing import Any

from pyshield.web.ports.filter import CallNext, WebFilter


def path_matches(patterns: Iterable[str], path: str) -> bool:
    """Return ``True`` if *path* matches any glob in *patterns* (case-sensitive)."""
    return any(fnmatchcase(path, p) for p in patterns)


class OncePerRequestFilter(abc.ABC):
    """Abstract base class for :class:`WebFilter` implementations.

    Provides automatic URL-pattern matching via ``url_patterns`` and
    ``exclude_patterns``.  Subclasses only need to implement ``do_filter()``.

    Attributes:
        url_patterns: Glob patterns that this filter applies to.
            If empty (default), the filter applies to *all* paths.
        exclude_patterns: Glob patterns to exclude even if ``url_patterns``
            matches.  Checked *after* ``url_patterns``.
    """

    url_patterns: Sequence[str] = ()
    exclude_patterns: Sequence[str] = ()

    def should_not_filter(self, request: Any) -> bool:
        """Return ``True`` if the request path does not match this filter's patterns."""
        path: str = request.url.path

        if self.url_patterns and not path_matches(self.url_patterns, path):
            return True

        return bool(self.exclude_patterns) and path_matches(self.exclude_patterns, path)

    @abc.abstractmethod
    async def do_filter(self, request: Any, call_next: CallNext) -> Any:
        """Execute the filter logic.  Must call ``await call_next(request)`` to proceed."""
        ...


class ConditionalFilter(OncePerRequestFilter):
    """Runs a sub-chain of filters only when ``condition(request)`` is true.

    Otherwise the request goes straight to ``call_next``.  The wrapped
    filters keep their own ``should_not_filter`` checks.

    Example::

        ConditionalFilter(lambda r: r.url.path.startswith("/forms/"), csrf_filter)
    """

    def __init__(self, condition: Callable[[Any], bool], *filters: WebFilter) -> None:
        if not filters:
            raise ValueError("ConditionalFilter requires at least one filter")
        self._condition = condition
        self._filters = list(filters)

    async def do_filter(self, request: Any, call_next: CallNext) -> Any:
        if not self._condition(request):
            return await call_next(request)
        return await compose(self._filters, call_next)(request)


def compose(filters: Sequence[WebFilter], endpoint: CallNext) -> CallNext:
    """Fold *filters* around *endpoint*; the first filter is the outermost."""
    chain = endpoint
    for web_filter in reversed(filters):
        chain = _wrap(web_filter, chain)
    return chain


def _wrap(web_filter: WebFilter, next_call: CallNext) -> CallNext:
    """Create a closure that conditionally invokes *web_filter*."""

    async def _inner(request: Any) -> Any:
        if web_filter.should_not_filter(request):
            return await next_call(request)
        return await web_filter.do_filter(request, next_call)

    return _inner
