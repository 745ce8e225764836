"""Account Models

This module defines the account record kept by the account store, the
two-factor status enum, and the API request/response models.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


class Account2FAStatus(str, Enum):
    """Two-factor status of an account.

    NO_SECRET -> SECRET_GENERATED_UNVERIFIED -> ENABLED <-> DISABLED

    Generating a secret from any status returns to SECRET_GENERATED_UNVERIFIED.
    """

    NO_SECRET = "no_secret"
    SECRET_GENERATED_UNVERIFIED = "secret_generated_unverified"
    ENABLED = "enabled"
    DISABLED = "disabled"


@dataclass
class Account:
    """Account record held by the account store.

    Attributes:
        account_id: Store-assigned identifier
        name: Display name
        email: Login email address (unique)
        password_hash: Hash produced by the password verifier
        otp_status: Current two-factor status
        otp_secret: Raw TOTP secret bytes, None until first setup
        otp_last_used_step: Last accepted time step (replay protection only)
        version: Incremented by the store on every update
        created_at: Account creation timestamp
        updated_at: Last modification timestamp
    """

    account_id: str
    name: str
    email: str
    password_hash: str
    otp_status: Account2FAStatus = Account2FAStatus.NO_SECRET
    otp_secret: Optional[bytes] = None
    otp_last_used_step: Optional[int] = None
    version: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def otp_enabled(self) -> bool:
        """Check if a second factor is required at login."""
        return self.otp_status == Account2FAStatus.ENABLED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "account_id": self.account_id,
            "name": self.name,
            "email": self.email,
            "password_hash": self.password_hash,
            "otp_status": self.otp_status.value,
            "otp_secret": self.otp_secret,
            "otp_last_used_step": self.otp_last_used_step,
            "version": self.version,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "Account":
        """Create Account from a stored document."""
        return cls(
            account_id=doc["account_id"],
            name=doc.get("name", ""),
            email=doc["email"],
            password_hash=doc["password_hash"],
            otp_status=Account2FAStatus(doc.get("otp_status", "no_secret")),
            otp_secret=doc.get("otp_secret"),
            otp_last_used_step=doc.get("otp_last_used_step"),
            version=doc.get("version", 0),
            created_at=doc.get("created_at") or datetime.now(timezone.utc),
            updated_at=doc.get("updated_at") or datetime.now(timezone.utc),
        )


class RegisterRequest(BaseModel):
    """Request model for account registration"""

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    """Request model for password login"""

    email: str
    password: str


class OTPGenerateRequest(BaseModel):
    """Request model for starting two-factor setup"""

    user_id: str


class OTPTokenRequest(BaseModel):
    """Request model carrying a candidate TOTP code"""

    user_id: str
    token: str = Field(..., description="Code from the authenticator app")


class OTPDisableRequest(BaseModel):
    """Request model for disabling two-factor authentication"""

    user_id: str
    token: Optional[str] = Field(
        None, description="Required only when the disable policy asks for a code"
    )


class AccountResponse(BaseModel):
    """API response model for an account. Never exposes the secret."""

    id: str
    name: str
    email: str
    otp_enabled: bool
    otp_status: str

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.account_id,
            name=account.name,
            email=account.email,
            otp_enabled=account.otp_enabled,
            otp_status=account.otp_status.value,
        )
