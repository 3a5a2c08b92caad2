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
"""Configuration for the toolkit: packaged defaults, a project file, env vars.

Only what the CSRF filters and logging read lives here.  Settings are
looked up by dot-notation key under ``pyshield.*`` and bound to
``@config_properties`` classes such as
:class:`~pyshield.web.csrf.CsrfProperties`.
"""

from __future__ import annotations

import dataclasses
import importlib.resources
import os
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar, get_type_hints

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ValidationError

T = TypeVar("T")

_CONFIG_PROPERTIES_ATTR = "__pyshield_config_prefix__"

_ENV_PREFIX = "PYSHIELD_"

_PROJECT_FILES = ("pyshield.yaml", "pyshield.toml")


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Mark a class as bindable to a configuration prefix.

    Works with both dataclasses and Pydantic BaseModel subclasses.

    Usage:
        @config_properties(prefix="pyshield.security.csrf")
        @dataclass
        class CsrfProperties:
            cookie_name: str = "csrf"
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _CONFIG_PROPERTIES_ATTR, prefix)
        return cls

    return decorator


class Config:
    """Nested settings with dot-notation access and env var overrides.

    Priority (highest wins):
    1. Environment variables (``PYSHIELD_SECURITY_CSRF_COOKIE_NAME``)
    2. Configuration dict / YAML / TOML file values
    3. Packaged defaults, then dataclass defaults
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data or {}
        self._loaded_sources: list[str] = []

    @property
    def loaded_sources(self) -> list[str]:
        """Config files that were loaded, in merge order."""
        return list(self._loaded_sources)

    @classmethod
    def load(cls, path: str | Path | None = None, load_defaults: bool = True) -> Config:
        """Merge the packaged defaults with a project settings file.

        *path* may name a YAML or TOML file or a directory; a directory is
        searched for ``pyshield.yaml`` then ``pyshield.toml`` and the first
        one found is used.  A missing file leaves the defaults alone.
        """
        data: dict[str, Any] = {}
        sources: list[str] = []

        if load_defaults:
            data = cls._load_defaults()
            sources.append("pyshield-defaults.yaml (defaults)")

        source = cls._find_source(Path(path)) if path is not None else None
        if source is not None:
            data = cls._deep_merge(data, cls._read(source))
            sources.append(str(source))

        instance = cls(data)
        instance._loaded_sources = sources
        return instance

    @staticmethod
    def _find_source(path: Path) -> Path | None:
        if path.is_dir():
            return next((path / name for name in _PROJECT_FILES if (path / name).is_file()), None)
        return path if path.is_file() else None

    @staticmethod
    def _read(path: Path) -> dict[str, Any]:
        if path.suffix == ".toml":
            with open(path, "rb") as f:
                return tomllib.load(f) or {}
        with open(path) as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def _load_defaults() -> dict[str, Any]:
        defaults_file = importlib.resources.files("pyshield.resources").joinpath("pyshield-defaults.yaml")
        with importlib.resources.as_file(defaults_file) as p, open(p) as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Recursively merge override into base, with override values winning."""
        merged = dict(base)
        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = Config._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key, checking env vars first."""
        env_val = os.environ.get(self._env_key(key))
        if env_val is not None:
            return env_val

        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, dict) or current.get(part) is None:
                return default
            current = current[part]
        return current

    @staticmethod
    def _env_key(key: str) -> str:
        # pyshield.security.csrf.secret -> PYSHIELD_SECURITY_CSRF_SECRET
        base = key.removeprefix("pyshield.")
        return _ENV_PREFIX + base.upper().replace(".", "_").replace("-", "_")

    def get_section(self, prefix: str) -> dict[str, Any]:
        """Get all values under a prefix as a dict."""
        current: Any = self._data
        for part in prefix.split("."):
            if not isinstance(current, dict):
                return {}
            current = current.get(part, {})
        return current if isinstance(current, dict) else {}

    def bind(self, config_cls: type[T]) -> T:
        """Bind configuration to a @config_properties dataclass or Pydantic model.

        Keys may be written kebab-case (``cookie-name``) or snake_case
        (``cookie_name``).  Environment variables override file values
        field by field.
        """
        prefix = getattr(config_cls, _CONFIG_PROPERTIES_ATTR, None)
        if prefix is None:
            raise ValueError(f"{config_cls.__name__} is not decorated with @config_properties")

        section = {str(k).replace("-", "_"): v for k, v in self.get_section(prefix).items()}

        if isinstance(config_cls, type) and issubclass(config_cls, BaseModel):
            try:
                return config_cls.model_validate(section)
            except ValidationError as exc:
                raise ValueError(
                    f"Configuration validation failed for '{config_cls.__name__}' (prefix='{prefix}'):\n{exc}"
                ) from exc

        hints = get_type_hints(config_cls)
        kwargs: dict[str, Any] = {}
        for field in dataclasses.fields(config_cls):  # type: ignore[arg-type]
            env_val = os.environ.get(self._env_key(f"{prefix}.{field.name}"))
            if env_val is not None:
                section[field.name] = env_val
            if field.name in section:
                kwargs[field.name] = _coerce(section[field.name], hints.get(field.name))

        return config_cls(**kwargs)


def _coerce(value: Any, expected_type: Any) -> Any:
    """Convert env-var strings to the field's declared type."""
    if not isinstance(value, str):
        return value
    if expected_type is int:
        return int(value)
    if expected_type is float:
        return float(value)
    if expected_type is bool:
        return value.lower() in ("true", "1", "yes")
    if expected_type == list[str]:
        return [v.strip() for v in value.split(",") if v.strip()]
    return value
