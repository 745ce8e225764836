"""Two-Factor State Machine

Tracks one account's two-factor status and secret and enforces the allowed
transitions:

    NO_SECRET                   --generate_secret--> SECRET_GENERATED_UNVERIFIED
    SECRET_GENERATED_UNVERIFIED --verify(success)--> ENABLED
    ENABLED                     --verify(success)--> ENABLED
    DISABLED                    --verify(success)--> ENABLED
    ENABLED                     --disable---------> DISABLED
    SECRET_GENERATED_UNVERIFIED --disable---------> DISABLED
    DISABLED                    --disable---------> DISABLED
    any                         --generate_secret--> SECRET_GENERATED_UNVERIFIED

A failed verification never changes the status. Disabling keeps the secret,
so a later successful verification re-enables the account without a new QR
code.

The machine only mutates its own fields; persisting them is the caller's job.
"""

import time
from enum import Enum
from typing import Optional

from otpgate.errors import (
    InvalidCodeError,
    InvalidTransitionError,
    NoSecretConfiguredError,
)
from otpgate.models.account import Account, Account2FAStatus
from otpgate.models.totp import TOTPParameters
from otpgate.services.totp_engine import DEFAULT_SECRET_BYTES, TOTPEngine


class TwoFactorEvent(str, Enum):
    GENERATE_SECRET = "generate_secret"
    VERIFY_SUCCESS = "verify"
    DISABLE = "disable"


_S = Account2FAStatus
_E = TwoFactorEvent

TRANSITIONS = {
    (_S.NO_SECRET, _E.GENERATE_SECRET): _S.SECRET_GENERATED_UNVERIFIED,
    (_S.SECRET_GENERATED_UNVERIFIED, _E.GENERATE_SECRET): _S.SECRET_GENERATED_UNVERIFIED,
    (_S.ENABLED, _E.GENERATE_SECRET): _S.SECRET_GENERATED_UNVERIFIED,
    (_S.DISABLED, _E.GENERATE_SECRET): _S.SECRET_GENERATED_UNVERIFIED,
    (_S.SECRET_GENERATED_UNVERIFIED, _E.VERIFY_SUCCESS): _S.ENABLED,
    (_S.ENABLED, _E.VERIFY_SUCCESS): _S.ENABLED,
    (_S.DISABLED, _E.VERIFY_SUCCESS): _S.ENABLED,
    (_S.SECRET_GENERATED_UNVERIFIED, _E.DISABLE): _S.DISABLED,
    (_S.ENABLED, _E.DISABLE): _S.DISABLED,
    (_S.DISABLED, _E.DISABLE): _S.DISABLED,
}


def next_status(status: Account2FAStatus, event: TwoFactorEvent) -> Account2FAStatus:
    """Look up the status an event leads to.

    Raises:
        InvalidTransitionError: If the event is not allowed from status
    """
    try:
        return TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidTransitionError(status.value, event.value) from None


class TwoFactorStateMachine:
    """Per-account two-factor status with enforced transitions."""

    def __init__(
        self,
        engine: TOTPEngine,
        status: Account2FAStatus = Account2FAStatus.NO_SECRET,
        secret: Optional[bytes] = None,
    ):
        if status != Account2FAStatus.NO_SECRET and secret is None:
            raise ValueError(f"Status {status.value} requires a secret")
        self.engine = engine
        self.status = status
        self.secret = secret

    @classmethod
    def for_account(cls, engine: TOTPEngine, account: Account) -> "TwoFactorStateMachine":
        return cls(engine, status=account.otp_status, secret=account.otp_secret)

    def generate_secret(self, byte_length: int = DEFAULT_SECRET_BYTES) -> bytes:
        """Replace the secret with a fresh one and wait for verification.

        Any code derived from the previous secret stops working.
        """
        new_status = next_status(self.status, TwoFactorEvent.GENERATE_SECRET)
        self.secret = self.engine.generate_secret(byte_length)
        self.status = new_status
        return self.secret

    def verify(
        self,
        candidate_code: str,
        params: TOTPParameters,
        current_time: Optional[float] = None,
    ) -> int:
        """Verify a code and move to ENABLED on success.

        Returns:
            The time step the code matched

        Raises:
            NoSecretConfiguredError: If no secret exists (status NO_SECRET)
            InvalidCodeError: If the code does not match; status unchanged
        """
        if self.status == Account2FAStatus.NO_SECRET or self.secret is None:
            raise NoSecretConfiguredError("No TOTP secret configured")

        if current_time is None:
            current_time = time.time()

        step = self.engine.find_matching_step(self.secret, candidate_code, current_time, params)
        if step is None:
            raise InvalidCodeError("Invalid TOTP code")

        self.status = next_status(self.status, TwoFactorEvent.VERIFY_SUCCESS)
        return step

    def disable(self) -> Account2FAStatus:
        """Stop requiring a second factor. The secret is kept."""
        self.status = next_status(self.status, TwoFactorEvent.DISABLE)
        return self.status
