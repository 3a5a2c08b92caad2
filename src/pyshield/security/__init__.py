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
"""pyshield security — CSRF token codec and cryptographic randomness."""

from pyshield.security.csrf import (
    CSRF_HEADER_NAME,
    SAFE_METHODS,
    TOKEN_LENGTH,
    create_sessionless_token,
    create_token,
    decode_token,
    encode_token,
    is_safe_method,
    mask,
    mask_token,
    unmask,
    verify,
    verify_sessionless_token,
    verify_token,
)
from pyshield.security.random import RandomSource, SystemRandomSource, random_noise

__all__ = [
    "CSRF_HEADER_NAME",
    "RandomSource",
    "SAFE_METHODS",
    "SystemRandomSource",
    "TOKEN_LENGTH",
    "create_sessionless_token",
    "create_token",
    "decode_token",
    "encode_token",
    "is_safe_method",
    "mask",
    "mask_token",
    "random_noise",
    "unmask",
    "verify",
    "verify_sessionless_token",
    "verify_token",
]
