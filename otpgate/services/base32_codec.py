"""Base32 codec for human-readable TOTP secrets (RFC 4648).

Encoding always produces upper-case text with the padding stripped, which is
the form authenticator apps expect in otpauth URIs. Decoding accepts either
unpadded text or text with exactly the padding RFC 4648 prescribes.
"""

import base64
import binascii
import re

from otpgate.errors import InvalidEncodingError

_ALPHABET_RE = re.compile(r"[A-Z2-7]*")

# Number of "=" characters RFC 4648 allows for each final-quantum size
_VALID_PADDING = {0, 1, 3, 4, 6}

# Unpadded lengths that cannot come from any byte string
_INVALID_REMAINDERS = {1, 3, 6}


def encode(data: bytes) -> str:
    """Encode bytes as unpadded upper-case Base32 text."""
    return base64.b32encode(bytes(data)).decode("ascii").rstrip("=")


def decode(text: str) -> bytes:
    """Decode Base32 text (case-insensitive, padded or unpadded) to bytes.

    Raises:
        InvalidEncodingError: If the text contains characters outside the
            alphabet or has an impossible padding/length.
    """
    if not isinstance(text, str):
        raise InvalidEncodingError("Base32 input must be text")

    # str.upper() maps some non-ASCII letters into the alphabet ("ß" -> "SS")
    if not text.isascii():
        raise InvalidEncodingError("Base32 input contains invalid characters")

    body = text.upper()
    padding = len(body) - len(body.rstrip("="))
    body = body.rstrip("=")

    if not _ALPHABET_RE.fullmatch(body):
        raise InvalidEncodingError("Base32 input contains invalid characters")

    if padding:
        if padding not in _VALID_PADDING or (len(body) + padding) % 8 != 0:
            raise InvalidEncodingError("Base32 input has invalid padding")
    elif len(body) % 8 in _INVALID_REMAINDERS:
        raise InvalidEncodingError("Base32 input has invalid length")

    try:
        return base64.b32decode(body + "=" * (-len(body) % 8))
    except binascii.Error as e:
        raise InvalidEncodingError(str(e)) from e
