"""TOTP Parameter Models"""

import hashlib
from dataclasses import dataclass, replace
from enum import Enum


class HashAlgorithm(str, Enum):
    """HMAC hash functions allowed by RFC 6238."""

    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"

    @property
    def digestmod(self):
        """hashlib constructor for use with hmac.new"""
        return {
            HashAlgorithm.SHA1: hashlib.sha1,
            HashAlgorithm.SHA256: hashlib.sha256,
            HashAlgorithm.SHA512: hashlib.sha512,
        }[self]


@dataclass(frozen=True)
class TOTPParameters:
    """Parameters shared by code generation, verification, and provisioning.

    Attributes:
        step_seconds: Duration of one time step
        digits: Code length
        algorithm: HMAC hash function
        window: Steps of tolerance on each side of the current step
            (0 checks only the current step)
    """

    step_seconds: int = 30
    digits: int = 6
    algorithm: HashAlgorithm = HashAlgorithm.SHA1
    window: int = 1

    def __post_init__(self):
        if self.step_seconds <= 0:
            raise ValueError("step_seconds must be positive")
        if not 6 <= self.digits <= 10:
            raise ValueError("digits must be between 6 and 10")
        if self.window < 0:
            raise ValueError("window must not be negative")
        # Accept plain strings such as "SHA256" from configuration
        object.__setattr__(self, "algorithm", HashAlgorithm(self.algorithm))

    def with_window(self, window: int) -> "TOTPParameters":
        return replace(self, window=window)
