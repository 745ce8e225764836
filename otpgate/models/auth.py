"""Authentication Outcome Models

Results returned by AccountAuthCoordinator. Each operation returns one of a
small set of these so callers can branch with isinstance checks.
"""

from dataclasses import dataclass
from enum import Enum

from otpgate.models.account import Account


class RejectionReason(str, Enum):
    """Why an authentication step was refused."""

    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_CODE = "invalid_code"


@dataclass(frozen=True)
class Credentials:
    email: str
    password: str


@dataclass(frozen=True)
class RequiresSecondFactor:
    """Password accepted; a TOTP code is still needed."""

    account_id: str


@dataclass(frozen=True)
class Authenticated:
    """Login fully authenticated; carries the issued session token."""

    account_id: str
    session: str


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason

    @property
    def message(self) -> str:
        # One message per reason so callers cannot tell missing accounts apart
        if self.reason == RejectionReason.INVALID_CREDENTIALS:
            return "Invalid email or password"
        return "Token is invalid or user doesn't exist"


@dataclass(frozen=True)
class ProvisioningData:
    """Secret and otpauth URI shown to the user during setup."""

    base32: str
    otpauth_url: str


@dataclass(frozen=True)
class Enabled:
    account: Account


@dataclass(frozen=True)
class Disabled:
    account: Account
