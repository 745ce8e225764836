"""Two-Factor Authentication Errors

Every failure raised by the TOTP engine, the state machine, and the account
store derives from TwoFactorError so the HTTP layer can map them in one place.
"""


class TwoFactorError(Exception):
    """Base exception for two-factor authentication errors."""
    pass


class InvalidEncodingError(TwoFactorError):
    """Raised when Base32 text cannot be decoded."""
    pass


class InvalidLabelError(TwoFactorError):
    """Raised when an issuer or account label cannot be placed in a provisioning URI."""
    pass


class InsufficientEntropyError(TwoFactorError):
    """Raised when the secure random source is unavailable. Fatal, never retried."""
    pass


class NoSecretConfiguredError(TwoFactorError):
    """Raised when a code is verified for an account that has no TOTP secret."""
    pass


class InvalidCodeError(TwoFactorError):
    """Raised when a candidate TOTP code does not match."""
    pass


class InvalidTransitionError(TwoFactorError):
    """Raised when an account status does not allow the requested transition."""

    def __init__(self, status: str, event: str):
        self.status = status
        self.event = event
        super().__init__(f"Cannot {event} while two-factor status is {status}")


class AccountNotFoundError(TwoFactorError):
    """Raised when an account is not found."""
    pass


class AccountConflictError(TwoFactorError):
    """Raised when a store write conflicts with the current account state."""
    pass
