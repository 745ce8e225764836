"""
Tests for the Base32 codec

Test Cases:
- TC-B32-01: Known RFC 4648 vectors encode without padding
- TC-B32-02: Decoding accepts padded, unpadded, and lower-case input
- TC-B32-03: Round trip for random and edge-case byte strings
- TC-B32-04: Invalid characters and padding are rejected
"""

import os

import pytest

from otpgate.errors import InvalidEncodingError
from otpgate.services import base32_codec


RFC4648_VECTORS = [
    (b"", ""),
    (b"f", "MY"),
    (b"fo", "MZXQ"),
    (b"foo", "MZXW6"),
    (b"foob", "MZXW6YQ"),
    (b"fooba", "MZXW6YTB"),
    (b"foobar", "MZXW6YTBOI"),
]


class TestEncode:
    """Tests for base32_codec.encode."""

    @pytest.mark.parametrize("raw,expected", RFC4648_VECTORS)
    def test_tc_b32_01_rfc4648_vectors_unpadded(self, raw, expected):
        """TC-B32-01: RFC 4648 test vectors, padding stripped."""
        assert base32_codec.encode(raw) == expected

    def test_encode_uses_only_alphabet(self):
        encoded = base32_codec.encode(os.urandom(20))

        assert set(encoded) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZ234567")
        assert "=" not in encoded

    def test_encode_twenty_byte_secret_is_32_chars(self, rfc_secret):
        assert base32_codec.encode(rfc_secret) == "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


class TestDecode:
    """Tests for base32_codec.decode."""

    @pytest.mark.parametrize("raw,encoded", RFC4648_VECTORS)
    def test_tc_b32_02_decodes_unpadded(self, raw, encoded):
        """TC-B32-02: Unpadded text decodes."""
        assert base32_codec.decode(encoded) == raw

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("MY======", b"f"),
            ("MZXQ====", b"fo"),
            ("MZXW6===", b"foo"),
            ("MZXW6YQ=", b"foob"),
        ],
    )
    def test_decodes_correctly_padded(self, text, expected):
        assert base32_codec.decode(text) == expected

    def test_decode_is_case_insensitive(self):
        assert base32_codec.decode("mzxw6ytboi") == b"foobar"

    @pytest.mark.parametrize(
        "text",
        [
            "MZXW6YTB!",
            "MZXW 6YTB",
            "MZXW1YTB",
            "MZXW8YTB",
            "MZ=XW6YTB",
            "ßAAAAAA",
            "ıAAAAAAA",
            "MZXW6YTB\n",
            "ＭＺＸＷ６ＹＴＢ",
        ],
    )
    def test_tc_b32_04_rejects_invalid_characters(self, text):
        """TC-B32-04: Characters outside the alphabet (or inner '=') are rejected."""
        with pytest.raises(InvalidEncodingError):
            base32_codec.decode(text)

    @pytest.mark.parametrize("text", ["M", "MZX", "MZXW6Y", "MY=", "MY=======", "MZXW6Y=="])
    def test_rejects_invalid_length_or_padding(self, text):
        with pytest.raises(InvalidEncodingError):
            base32_codec.decode(text)

    def test_rejects_non_text(self):
        with pytest.raises(InvalidEncodingError):
            base32_codec.decode(b"MZXW6YTB")


class TestRoundTrip:
    """TC-B32-03: decode(encode(b)) == b."""

    @pytest.mark.parametrize("length", [0, 1, 2, 3, 4, 5, 15, 16, 20, 32, 64])
    def test_tc_b32_03_round_trip(self, length):
        data = os.urandom(length)
        assert base32_codec.decode(base32_codec.encode(data)) == data

    def test_round_trip_all_byte_values(self):
        data = bytes(range(256))
        assert base32_codec.decode(base32_codec.encode(data)) == data
