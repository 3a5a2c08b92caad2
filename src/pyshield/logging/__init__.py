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
"""pyshield logging — hexagonal logging port and the structlog adapter."""

from typing import Any

from pyshield.core.config import Config
from pyshield.logging.port import LoggingPort
from pyshield.logging.structlog_adapter import StructlogAdapter, redact_token_material


def configure_logging(config: Config, adapter: LoggingPort | None = None) -> LoggingPort:
    """Configure toolkit logging from *config* and return the adapter used."""
    adapter = adapter or StructlogAdapter()
    adapter.configure(config)
    return adapter


def get_logger(name: str) -> Any:
    """Shorthand for a structlog logger under the given name."""
    return StructlogAdapter().get_logger(name)


__all__ = [
    "LoggingPort",
    "StructlogAdapter",
    "configure_logging",
    "get_logger",
    "redact_token_material",
]
