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
"""Tests for the CSRF token codec — masking, verification and signed tokens."""

from __future__ import annotations

import base64
from datetime import timedelta

import pytest

from pyshield.kernel.exceptions import RandomnessException
from pyshield.security.csrf import (
    MASKED_TOKEN_LENGTH,
    SESSIONLESS_TOKEN_LENGTH,
    SIGNED_TOKEN_LENGTH,
    TOKEN_LENGTH,
    create_sessionless_token,
    create_token,
    decode_token,
    encode_token,
    generate_raw_token,
    is_safe_method,
    mask,
    mask_token,
    unmask,
    verify,
    verify_sessionless_token,
    verify_token,
)

SECRET = bytes(range(32))
OTHER_SECRET = bytes(range(32, 64))
RAW_TOKEN = bytes(range(100, 132))

NOW_NS = 1_700_000_000 * 1_000_000_000


class FixedRandom:
    """Deterministic random source repeating a single byte."""

    def __init__(self, value: int = 0x5A) -> None:
        self.value = value

    def read(self, n: int) -> bytes:
        return bytes([self.value]) * n


class ShortRandom:
    def read(self, n: int) -> bytes:
        return b"\x00" * (n - 1)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


class TestEncoding:
    def test_encode_is_unpadded_urlsafe(self):
        encoded = encode_token(b"\xff\xfe\xfd\xfc")
        assert "=" not in encoded
        assert "+" not in encoded and "/" not in encoded

    def test_decode_accepts_padding(self):
        padded = base64.urlsafe_b64encode(b"\x01\x02\x03\x04").decode()
        assert padded.endswith("=")
        assert decode_token(padded) == b"\x01\x02\x03\x04"

    @pytest.mark.parametrize("value", [None, "", "!!!", "a", "café"])
    def test_decode_malformed_returns_none(self, value):
        assert decode_token(value) is None

    def test_safe_methods(self):
        for method in ("GET", "HEAD", "OPTIONS", "TRACE", "get"):
            assert is_safe_method(method)
        for method in ("POST", "PUT", "PATCH", "DELETE"):
            assert not is_safe_method(method)


# ---------------------------------------------------------------------------
# Masked tokens
# ---------------------------------------------------------------------------


class TestMask:
    def test_mask_layout(self):
        buf = bytearray(TOKEN_LENGTH) + bytearray(RAW_TOKEN)
        mask(SECRET, buf, FixedRandom(0x5A))

        assert bytes(buf[:TOKEN_LENGTH]) == b"\x5a" * TOKEN_LENGTH
        expected = bytes(t ^ 0x5A ^ s for t, s in zip(RAW_TOKEN, SECRET))
        assert bytes(buf[TOKEN_LENGTH:]) == expected

    def test_unmask_inverts_mask(self):
        buf = bytearray(TOKEN_LENGTH) + bytearray(RAW_TOKEN)
        mask(SECRET, buf)
        unmask(SECRET, buf)
        assert bytes(buf[TOKEN_LENGTH:]) == RAW_TOKEN

    def test_masking_is_not_deterministic(self):
        assert mask_token(SECRET, RAW_TOKEN) != mask_token(SECRET, RAW_TOKEN)

    def test_masked_token_length(self):
        assert len(mask_token(SECRET, RAW_TOKEN)) == MASKED_TOKEN_LENGTH

    def test_mask_rejects_short_buffer(self):
        with pytest.raises(ValueError):
            mask(SECRET, bytearray(10))

    def test_mask_rejects_short_secret(self):
        with pytest.raises(ValueError):
            mask(b"short", bytearray(MASKED_TOKEN_LENGTH))

    def test_unmask_rejects_short_buffer(self):
        with pytest.raises(ValueError):
            unmask(SECRET, bytearray(MASKED_TOKEN_LENGTH - 1))

    def test_mask_token_rejects_wrong_token_length(self):
        with pytest.raises(ValueError):
            mask_token(SECRET, b"x" * 16)

    def test_failing_random_source_raises(self):
        with pytest.raises(RandomnessException):
            mask_token(SECRET, RAW_TOKEN, ShortRandom())


class TestVerify:
    def _pair(self, secret: bytes = SECRET) -> tuple[str, str]:
        return encode_token(RAW_TOKEN), encode_token(mask_token(secret, RAW_TOKEN))

    def test_genuine_pair_verifies(self):
        real, sent = self._pair()
        assert verify(SECRET, real, sent) is True

    def test_every_masking_verifies(self):
        real = encode_token(RAW_TOKEN)
        for _ in range(5):
            assert verify(SECRET, real, encode_token(mask_token(SECRET, RAW_TOKEN)))

    def test_padded_sent_token_verifies(self):
        sent = base64.urlsafe_b64encode(mask_token(SECRET, RAW_TOKEN)).decode()
        assert verify(SECRET, encode_token(RAW_TOKEN), sent)

    def test_other_secret_fails(self):
        real, sent = self._pair(OTHER_SECRET)
        assert verify(SECRET, real, sent) is False

    def test_other_real_token_fails(self):
        _, sent = self._pair()
        assert verify(SECRET, encode_token(generate_raw_token()), sent) is False

    def test_tampered_token_fails(self):
        masked = bytearray(mask_token(SECRET, RAW_TOKEN))
        masked[-1] ^= 0x01
        assert verify(SECRET, encode_token(RAW_TOKEN), encode_token(bytes(masked))) is False

    def test_raw_token_sent_unmasked_fails(self):
        real = encode_token(RAW_TOKEN)
        assert verify(SECRET, real, real) is False

    @pytest.mark.parametrize("sent", [None, "", "not base64!", encode_token(b"x" * 63)])
    def test_malformed_sent_token_fails(self, sent):
        assert verify(SECRET, encode_token(RAW_TOKEN), sent) is False

    def test_malformed_real_token_fails(self):
        _, sent = self._pair()
        assert verify(SECRET, encode_token(b"x" * 31), sent) is False
        assert verify(SECRET, None, sent) is False

    def test_wrong_secret_length_fails(self):
        real, sent = self._pair()
        assert verify(b"short", real, sent) is False


# ---------------------------------------------------------------------------
# Signed tokens
# ---------------------------------------------------------------------------


class TestSignedToken:
    def test_token_length(self):
        token = create_token(SECRET, "session-1", timedelta(hours=1))
        assert len(token) == SIGNED_TOKEN_LENGTH

    def test_valid_before_expiry(self):
        token = create_token(SECRET, "session-1", timedelta(hours=1), now_ns=NOW_NS)
        assert verify_token(SECRET, token, "session-1", now_ns=NOW_NS) is True

    def test_valid_with_current_clock(self):
        token = create_token(SECRET, "session-1", timedelta(hours=1))
        assert verify_token(SECRET, token, "session-1") is True

    def test_expired_token_fails(self):
        token = create_token(SECRET, "session-1", timedelta(hours=1), now_ns=NOW_NS)
        later = NOW_NS + 2 * 3600 * 1_000_000_000
        assert verify_token(SECRET, token, "session-1", now_ns=later) is False

    def test_negative_duration_is_already_expired(self):
        token = create_token(SECRET, "session-1", timedelta(seconds=-1))
        assert verify_token(SECRET, token, "session-1") is False

    def test_sub_second_expiry(self):
        token = create_token(SECRET, "s", timedelta(milliseconds=500), now_ns=NOW_NS)
        assert verify_token(SECRET, token, "s", now_ns=NOW_NS + 499_000_000)
        assert not verify_token(SECRET, token, "s", now_ns=NOW_NS + 500_000_000)

    def test_other_session_fails(self):
        token = create_token(SECRET, "session-1", timedelta(hours=1))
        assert verify_token(SECRET, token, "session-2") is False

    def test_other_secret_fails(self):
        token = create_token(SECRET, "session-1", timedelta(hours=1))
        assert verify_token(OTHER_SECRET, token, "session-1") is False

    def test_string_secret_is_accepted(self):
        token = create_token("passphrase", "session-1", timedelta(hours=1))
        assert verify_token("passphrase", token, "session-1")
        assert verify_token(b"passphrase", token, "session-1")

    def test_extending_expiry_breaks_signature(self):
        token = bytearray(create_token(SECRET, "session-1", timedelta(seconds=-1)))
        # Push the expiry seconds far into the future without re-signing.
        token[7] = 0x10
        assert verify_token(SECRET, bytes(token), "session-1") is False

    @pytest.mark.parametrize("token", [None, b"", b"x" * (SIGNED_TOKEN_LENGTH - 1), b"x" * 64])
    def test_malformed_token_fails(self, token):
        assert verify_token(SECRET, token, "session-1") is False


class TestSessionlessToken:
    def test_roundtrip(self):
        token = create_sessionless_token(SECRET)
        assert len(token) == SESSIONLESS_TOKEN_LENGTH
        assert verify_sessionless_token(SECRET, token) is True

    def test_tokens_differ(self):
        assert create_sessionless_token(SECRET) != create_sessionless_token(SECRET)

    def test_other_secret_fails(self):
        token = create_sessionless_token(SECRET)
        assert verify_sessionless_token(OTHER_SECRET, token) is False

    def test_tampered_payload_fails(self):
        token = bytearray(create_sessionless_token(SECRET))
        token[0] ^= 0xFF
        assert verify_sessionless_token(SECRET, bytes(token)) is False

    def test_signed_session_token_is_not_a_sessionless_token(self):
        token = create_token(SECRET, "session-1", timedelta(hours=1))
        assert verify_sessionless_token(SECRET, token) is False

    def test_none_fails(self):
        assert verify_sessionless_token(SECRET, None) is False
