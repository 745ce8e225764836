"""Account Authentication Coordinator

Orchestrates the password check and the TOTP gate. This is the only component
that talks to the collaborators (account store, password verifier, session
issuer); everything it needs is injected at construction time.

Operations:
- register: create an account with two-factor status NO_SECRET
- login: password check, then either a session or a second-factor challenge
- complete_second_factor: verify a login code and issue a session
- setup_second_factor: generate a fresh secret and its provisioning URI
- confirm_setup: verify the first code and enable two-factor protection
- disable_second_factor: stop requiring a code (policy decides whether a
  valid code must be supplied)

Verification failures are reported as Rejected(INVALID_CODE) whether the
account is missing, has no secret, or sent a wrong code. A throwaway
verification runs in the first two cases so response timing is similar.
Likewise an unknown email is checked against a dummy password hash.

Writes carry the version that was read, so a concurrent change to the
same account (a new secret, a consumed step) surfaces as
AccountConflictError instead of being overwritten.
"""

import time
from typing import Callable, Optional, Tuple, Union

from otpgate.config import Settings, get_settings
from otpgate.errors import (
    AccountNotFoundError,
    InvalidCodeError,
    NoSecretConfiguredError,
)
from otpgate.models.account import Account, Account2FAStatus
from otpgate.models.auth import (
    Authenticated,
    Credentials,
    Disabled,
    Enabled,
    ProvisioningData,
    Rejected,
    RejectionReason,
    RequiresSecondFactor,
)
from otpgate.models.totp import TOTPParameters
from otpgate.services import base32_codec
from otpgate.services.account_store import AccountStore, InMemoryAccountStore, get_account_store
from otpgate.services.password_service import PasswordVerifier
from otpgate.services.provisioning import ProvisioningURIBuilder
from otpgate.services.session_issuer import SessionIssuer
from otpgate.services.totp_engine import TOTPEngine
from otpgate.services.two_factor_state import TwoFactorStateMachine
from otpgate.utils.logger import get_logger

logger = get_logger(__name__)

_THROWAWAY_SECRET = bytes(20)


class AccountAuthCoordinator:
    """Password + TOTP authentication decisions for accounts."""

    def __init__(
        self,
        store: AccountStore,
        password_verifier: PasswordVerifier,
        session_issuer: SessionIssuer,
        engine: Optional[TOTPEngine] = None,
        uri_builder: Optional[ProvisioningURIBuilder] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.password_verifier = password_verifier
        self.session_issuer = session_issuer
        self.engine = engine or TOTPEngine()
        self.uri_builder = uri_builder or ProvisioningURIBuilder()
        self.settings = settings or get_settings()
        self.clock = clock

    @property
    def login_params(self) -> TOTPParameters:
        return self.settings.totp_parameters(window=self.settings.login_verify_window)

    @property
    def setup_params(self) -> TOTPParameters:
        return self.settings.totp_parameters(window=self.settings.setup_verify_window)

    async def register(self, name: str, email: str, password: str) -> Account:
        """Create an account without two-factor protection.

        Raises:
            AccountConflictError: If the email is already registered
        """
        account = Account(
            account_id=InMemoryAccountStore.new_account_id(),
            name=name,
            email=email.strip().lower(),
            password_hash=self.password_verifier.hash(password),
        )
        created = await self.store.create(account)
        logger.log_auth_event("register", account_id=created.account_id)
        return created

    async def get_account(self, account_id: str) -> Account:
        return await self.store.get(account_id)

    async def login(
        self, credentials: Credentials
    ) -> Union[RequiresSecondFactor, Authenticated, Rejected]:
        """Check the password, then decide whether a second factor is needed."""
        account = await self.store.get_by_email(credentials.email.strip().lower())

        if account is None:
            # Same bcrypt cost as a wrong password
            self.password_verifier.check(credentials.password, self.password_verifier.dummy_hash)
            logger.log_auth_event("login", success=False)
            return Rejected(RejectionReason.INVALID_CREDENTIALS)

        if not self.password_verifier.check(credentials.password, account.password_hash):
            logger.log_auth_event("login", success=False)
            return Rejected(RejectionReason.INVALID_CREDENTIALS)

        if account.otp_enabled:
            logger.log_auth_event(
                "login", account_id=account.account_id, second_factor_required=True
            )
            return RequiresSecondFactor(account.account_id)

        logger.log_auth_event("login", account_id=account.account_id)
        return Authenticated(account.account_id, self.session_issuer.issue(account.account_id))

    async def complete_second_factor(
        self, account_id: str, candidate_code: str
    ) -> Union[Authenticated, Rejected]:
        """Verify a login code and issue a session.

        A disabled account that still holds its secret is re-enabled by a
        valid code. A pending setup is only completed by confirm_setup, so
        accounts in SECRET_GENERATED_UNVERIFIED are rejected here.
        """
        verified = await self._verify(account_id, candidate_code, self.login_params)
        if verified is None or (
            verified[0].otp_status == Account2FAStatus.SECRET_GENERATED_UNVERIFIED
        ):
            logger.log_auth_event("second_factor", account_id=account_id, success=False)
            return Rejected(RejectionReason.INVALID_CODE)

        account, machine, step = verified
        await self._persist_verification(account, machine, step)

        logger.log_auth_event("second_factor", account_id=account_id)
        return Authenticated(account_id, self.session_issuer.issue(account_id))

    async def setup_second_factor(self, account_id: str) -> ProvisioningData:
        """Generate a fresh secret and return it with its provisioning URI.

        Any previous secret is replaced; the account waits for confirm_setup.

        Raises:
            AccountNotFoundError: If the account does not exist
            InvalidLabelError: If the account email cannot be used as a label
        """
        account = await self.store.get(account_id)
        machine = TwoFactorStateMachine.for_account(self.engine, account)

        secret = machine.generate_secret(self.settings.secret_byte_length)
        otpauth_url = self.uri_builder.build(
            self.settings.issuer_name, account.email, secret, self.setup_params
        )

        await self.store.update(
            account_id,
            {
                "otp_status": machine.status,
                "otp_secret": secret,
                "otp_last_used_step": None,
            },
            expected_status=account.otp_status,
            expected_version=account.version,
        )

        logger.log_auth_event("setup", account_id=account_id)
        return ProvisioningData(base32=base32_codec.encode(secret), otpauth_url=otpauth_url)

    async def confirm_setup(
        self, account_id: str, candidate_code: str
    ) -> Union[Enabled, Rejected]:
        """Verify the first code against the pending secret and enable 2FA."""
        verified = await self._verify(account_id, candidate_code, self.setup_params)
        if verified is None:
            logger.log_auth_event("confirm_setup", account_id=account_id, success=False)
            return Rejected(RejectionReason.INVALID_CODE)

        account, machine, step = verified
        updated = await self._persist_verification(account, machine, step)

        logger.log_auth_event("confirm_setup", account_id=account_id)
        return Enabled(updated)

    async def disable_second_factor(
        self, account_id: str, candidate_code: Optional[str] = None
    ) -> Union[Disabled, Rejected]:
        """Stop requiring a second factor. The secret is kept.

        Unconditional unless settings.disable_requires_code is set, in which
        case candidate_code must verify first.

        Raises:
            AccountNotFoundError: If the account does not exist
            InvalidTransitionError: If the account never had a secret
        """
        if self.settings.disable_requires_code:
            verified = await self._verify(account_id, candidate_code or "", self.login_params)
            if verified is None:
                logger.log_auth_event("disable", account_id=account_id, success=False)
                return Rejected(RejectionReason.INVALID_CODE)
            account, machine, step = verified
        else:
            account = await self.store.get(account_id)
            machine = TwoFactorStateMachine.for_account(self.engine, account)
            step = None

        machine.disable()

        fields = {"otp_status": machine.status}
        if step is not None and self.settings.reject_reused_codes:
            fields["otp_last_used_step"] = step

        updated = await self.store.update(
            account_id,
            fields,
            expected_status=account.otp_status,
            expected_version=account.version,
        )

        logger.log_auth_event("disable", account_id=account_id)
        return Disabled(updated)

    async def _verify(
        self, account_id: str, candidate_code: str, params: TOTPParameters
    ) -> Optional[Tuple[Account, TwoFactorStateMachine, int]]:
        """Verify a code for an account; None on any failure."""
        now = self.clock()

        try:
            account = await self.store.get(account_id)
        except AccountNotFoundError:
            self.engine.verify(_THROWAWAY_SECRET, candidate_code, now, params)
            return None

        machine = TwoFactorStateMachine.for_account(self.engine, account)
        try:
            step = machine.verify(candidate_code, params, current_time=now)
        except NoSecretConfiguredError:
            self.engine.verify(_THROWAWAY_SECRET, candidate_code, now, params)
            return None
        except InvalidCodeError:
            return None

        if (
            self.settings.reject_reused_codes
            and account.otp_last_used_step is not None
            and step <= account.otp_last_used_step
        ):
            logger.warning("Replayed TOTP code rejected", account_id=account_id)
            return None

        return account, machine, step

    async def _persist_verification(
        self, account: Account, machine: TwoFactorStateMachine, step: int
    ) -> Account:
        fields = {}
        if machine.status != account.otp_status:
            fields["otp_status"] = machine.status
        if self.settings.reject_reused_codes:
            fields["otp_last_used_step"] = step

        if not fields:
            return account

        return await self.store.update(
            account.account_id,
            fields,
            expected_status=account.otp_status,
            expected_version=account.version,
        )


_coordinator_instance: Optional[AccountAuthCoordinator] = None


def get_auth_coordinator() -> AccountAuthCoordinator:
    """Get the coordinator wired to the default collaborators."""
    global _coordinator_instance

    if _coordinator_instance is None:
        _coordinator_instance = AccountAuthCoordinator(
            store=get_account_store(),
            password_verifier=PasswordVerifier(),
            session_issuer=SessionIssuer(),
        )

    return _coordinator_instance


def reset_auth_coordinator():
    global _coordinator_instance
    _coordinator_instance = None
