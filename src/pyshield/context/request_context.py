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
"""Request-scoped context backed by contextvars and the ASGI scope.

Each HTTP request gets a fresh RequestContext via RequestContextFilter.
Values are stored under :class:`ContextKey` objects rather than strings,
so unrelated features can never overwrite each other's entries.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Any, Generic, TypeVar, overload

V = TypeVar("V")

SCOPE_KEY = "pyshield.request_context"

_request_context_var: ContextVar[RequestContext | None] = ContextVar(
    "pyshield_request_context", default=None
)


class ContextKey(Generic[V]):
    """Identity-compared key for a value in a :class:`RequestContext`.

    Two keys created with the same name are still distinct; the name is
    only used in ``repr``.
    """

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"ContextKey({self.name!r})"


class RequestContext:
    """Holds per-request state: a request ID and typed attributes.

    Use ``RequestContext.init()`` to create a new context for the current
    async task, and ``RequestContext.current()`` to retrieve it.
    """

    def __init__(self, request_id: str | None = None) -> None:
        self._request_id = request_id or uuid.uuid4().hex
        self._attributes: dict[ContextKey[Any], Any] = {}

    @property
    def request_id(self) -> str:
        return self._request_id

    @overload
    def get(self, key: ContextKey[V]) -> V | None: ...
    @overload
    def get(self, key: ContextKey[V], default: V) -> V: ...

    def get(self, key: ContextKey[Any], default: Any = None) -> Any:
        return self._attributes.get(key, default)

    def set(self, key: ContextKey[V], value: V) -> None:
        self._attributes[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._attributes

    def attach(self, scope: dict[str, Any]) -> RequestContext:
        """Bind this context to an ASGI scope so endpoints can find it."""
        scope[SCOPE_KEY] = self
        return self

    @classmethod
    def init(cls, request_id: str | None = None) -> RequestContext:
        """Create and set a new RequestContext for the current async task."""
        ctx = cls(request_id=request_id)
        _request_context_var.set(ctx)
        return ctx

    @classmethod
    def current(cls) -> RequestContext | None:
        """Get the RequestContext for the current async task, or None."""
        return _request_context_var.get()

    @classmethod
    def of(cls, request: Any) -> RequestContext:
        """Return the context bound to *request*, creating one if needed.

        Lookup order: the request's ASGI scope, then the current task.
        A context created here is attached to the scope so the rest of the
        request sees the same instance.
        """
        scope = getattr(request, "scope", None)
        if isinstance(scope, dict):
            ctx = scope.get(SCOPE_KEY)
            if isinstance(ctx, RequestContext):
                return ctx
        ctx = cls.current() or cls()
        if isinstance(scope, dict):
            ctx.attach(scope)
        return ctx

    @classmethod
    def clear(cls) -> None:
        """Clear the RequestContext for the current async task."""
        _request_context_var.set(None)
