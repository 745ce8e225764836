"""
Pytest configuration and shared fixtures for OTP Gate testing.
"""
import pytest

from otpgate.config import Settings
from otpgate.models.totp import TOTPParameters
from otpgate.services.account_store import InMemoryAccountStore
from otpgate.services.auth_coordinator import AccountAuthCoordinator
from otpgate.services.password_service import PasswordVerifier
from otpgate.services.session_issuer import SessionIssuer
from otpgate.services.totp_engine import TOTPEngine

# Start of time step 56_666_666 (2023-11-14T22:13:00Z)
FIXED_NOW = 56_666_666 * 30.0


class FakeClock:
    """Settable clock for deterministic time-step tests."""

    def __init__(self, now: float = FIXED_NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def rfc_secret() -> bytes:
    """Shared secret from RFC 4226 Appendix D / RFC 6238 Appendix B (SHA1)."""
    return b"12345678901234567890"


@pytest.fixture
def engine() -> TOTPEngine:
    return TOTPEngine()


@pytest.fixture
def params() -> TOTPParameters:
    return TOTPParameters()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the environment, with a cheap bcrypt cost."""
    return Settings(
        _env_file=None,
        issuer_name="OTP Gate",
        bcrypt_rounds=4,
        session_secret_key="test-session-key",
    )


@pytest.fixture
def store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def coordinator(store, engine, test_settings, clock) -> AccountAuthCoordinator:
    return AccountAuthCoordinator(
        store=store,
        password_verifier=PasswordVerifier(rounds=4),
        session_issuer=SessionIssuer(secret_key="test-session-key"),
        engine=engine,
        settings=test_settings,
        clock=clock,
    )


def pytest_configure(config):
    """Pytest configuration hook."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "security: marks tests as security tests"
    )
