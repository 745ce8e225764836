"""TOTP Engine (RFC 4226 / RFC 6238)

Generates secrets, computes time-step codes, and verifies candidate codes
within a window of adjacent steps. The HMAC-based OTP math is done here
directly rather than through an OTP library:

    counter   = floor(unix_time / step_seconds)
    digest    = HMAC(secret, counter as 8-byte big-endian)
    offset    = digest[-1] & 0x0F
    truncated = digest[offset:offset + 4] & 0x7FFFFFFF
    code      = truncated mod 10**digits, zero-padded

The engine is stateless. It does not remember which steps have been used;
replay protection, when enabled, is applied by the coordinator.
"""

import hmac
import math
import secrets
import struct
from typing import Callable, Optional

from otpgate.errors import InsufficientEntropyError
from otpgate.models.totp import TOTPParameters
from otpgate.utils.logger import get_logger

logger = get_logger(__name__)

MIN_SECRET_BYTES = 15  # 120 bits
DEFAULT_SECRET_BYTES = 20  # 160 bits, the SHA-1 block output size


class TOTPEngine:
    """Secret generation and TOTP code computation/verification."""

    def __init__(self, random_source: Callable[[int], bytes] = secrets.token_bytes):
        self.random_source = random_source

    def generate_secret(self, byte_length: int = DEFAULT_SECRET_BYTES) -> bytes:
        """Draw a new secret from the secure random source.

        Raises:
            ValueError: If byte_length is below MIN_SECRET_BYTES
            InsufficientEntropyError: If the random source is unavailable
        """
        if byte_length < MIN_SECRET_BYTES:
            raise ValueError(
                f"TOTP secrets need at least {MIN_SECRET_BYTES} bytes, got {byte_length}"
            )

        try:
            secret = self.random_source(byte_length)
        except (OSError, NotImplementedError) as e:
            logger.critical("Secure random source unavailable", error=str(e))
            raise InsufficientEntropyError("Secure random source unavailable") from e

        if len(secret) != byte_length:
            logger.critical(
                "Secure random source returned short read",
                requested=byte_length,
                received=len(secret),
            )
            raise InsufficientEntropyError("Secure random source returned too few bytes")

        logger.debug("Generated new TOTP secret", byte_length=byte_length)
        return secret

    @staticmethod
    def time_step_index(current_time: float, params: TOTPParameters) -> int:
        return math.floor(current_time / params.step_seconds)

    def compute_code(
        self, secret: bytes, time_step_index: int, params: TOTPParameters
    ) -> str:
        """Compute the code for a single time step (RFC 4226 HOTP)."""
        if time_step_index < 0:
            raise ValueError("time_step_index must not be negative")

        counter = struct.pack(">Q", time_step_index)
        digest = hmac.new(secret, counter, params.algorithm.digestmod).digest()

        offset = digest[-1] & 0x0F
        truncated = struct.unpack(">I", digest[offset:offset + 4])[0] & 0x7FFFFFFF

        return str(truncated % (10 ** params.digits)).zfill(params.digits)

    def find_matching_step(
        self,
        secret: bytes,
        candidate_code: str,
        current_time: float,
        params: TOTPParameters,
    ) -> Optional[int]:
        """Return the time step whose code matches the candidate, or None.

        Steps are checked from the earliest in the window to the latest.
        Malformed candidates fail before any HMAC is computed.
        """
        if (
            not isinstance(candidate_code, str)
            or len(candidate_code) != params.digits
            or not candidate_code.isascii()
            or not candidate_code.isdigit()
        ):
            return None

        current_step = self.time_step_index(current_time, params)
        candidate = candidate_code.encode("ascii")

        for step in range(current_step - params.window, current_step + params.window + 1):
            if step < 0:
                continue
            expected = self.compute_code(secret, step, params).encode("ascii")
            if hmac.compare_digest(expected, candidate):
                return step

        return None

    def verify(
        self,
        secret: bytes,
        candidate_code: str,
        current_time: float,
        params: TOTPParameters,
    ) -> bool:
        """Check a candidate code against the window around current_time."""
        return self.find_matching_step(secret, candidate_code, current_time, params) is not None
