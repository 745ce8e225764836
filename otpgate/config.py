"""Application Configuration Management"""

from functools import lru_cache
from typing import Any, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from otpgate.models.totp import HashAlgorithm, TOTPParameters


class Settings(BaseSettings):
    """Application settings with environment variable support (OTPGATE_ prefix)"""

    model_config = SettingsConfigDict(
        env_prefix="OTPGATE_",
        env_file=".env.local",  # Use .env.local for local dev
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "OTP Gate"
    debug: bool = False
    log_level: str = "INFO"

    # Name shown in authenticator apps next to the account label
    issuer_name: str = "OTP Gate"

    # TOTP parameters (RFC 6238 defaults)
    secret_byte_length: int = 20
    totp_step_seconds: int = 30
    totp_digits: int = 6
    totp_algorithm: HashAlgorithm = HashAlgorithm.SHA1

    # Steps of clock-skew tolerance on each side of the current step
    login_verify_window: int = 1
    setup_verify_window: int = 1

    # Security policies. Both default to the observed upstream behaviour.
    disable_requires_code: bool = False
    reject_reused_codes: bool = False

    # Session tokens
    session_secret_key: str = ""
    session_max_age: int = 86400

    cors_allowed_origins: list[str] = ["http://localhost:3000"]

    # bcrypt work factor for stored password hashes
    bcrypt_rounds: int = 12

    @field_validator("totp_algorithm", mode="before")
    @classmethod
    def _normalize_algorithm(cls, value: Any) -> Any:
        # Accept "sha256" as well as "SHA256"
        if isinstance(value, str):
            return value.strip().upper()
        return value

    def totp_parameters(self, window: Optional[int] = None) -> TOTPParameters:
        """Build TOTP parameters, using the login window unless one is given"""
        return TOTPParameters(
            step_seconds=self.totp_step_seconds,
            digits=self.totp_digits,
            algorithm=self.totp_algorithm,
            window=self.login_verify_window if window is None else window,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
