"""Account Store

Defines the store contract the coordinator depends on and an in-memory
implementation used by default and in tests.

Every update bumps the record's `version`. Two-factor writes pass the
version they read (`expected_version`), and optionally the status
(`expected_status`). The store applies the update atomically and raises
AccountConflictError if the record changed in between, so two concurrent
requests for the same account cannot both win. This covers writes that keep
the status but change the secret or the last used step.
"""

import asyncio
import copy
import uuid
from abc import ABC, abstractmethod
from dataclasses import fields as dataclass_fields
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from otpgate.errors import AccountConflictError, AccountNotFoundError
from otpgate.models.account import Account, Account2FAStatus
from otpgate.utils.logger import get_logger

logger = get_logger(__name__)

_UPDATABLE_FIELDS = {
    f.name for f in dataclass_fields(Account)
} - {"account_id", "created_at", "version"}


class AccountStore(ABC):
    """Store contract for account records."""

    @abstractmethod
    async def get(self, account_id: str) -> Account:
        """Get account by ID. Raises AccountNotFoundError."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Account]:
        """Get account by email, None if absent."""

    @abstractmethod
    async def create(self, account: Account) -> Account:
        """Insert a new account. Raises AccountConflictError on duplicate email."""

    @abstractmethod
    async def update(
        self,
        account_id: str,
        fields: Dict[str, Any],
        expected_status: Optional[Account2FAStatus] = None,
        expected_version: Optional[int] = None,
    ) -> Account:
        """Apply field updates atomically and bump the version.

        Raises:
            AccountNotFoundError: If the account does not exist
            AccountConflictError: If expected_status or expected_version is
                given and differs from the stored record
        """


class InMemoryAccountStore(AccountStore):
    """Process-local store. Copies records in and out so callers never share state."""

    def __init__(self):
        self._accounts: Dict[str, Account] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def new_account_id() -> str:
        return uuid.uuid4().hex

    async def get(self, account_id: str) -> Account:
        account = self._accounts.get(account_id)
        if account is None:
            logger.debug("Account not found", account_id=account_id)
            raise AccountNotFoundError(f"Account {account_id} not found")
        return copy.deepcopy(account)

    async def get_by_email(self, email: str) -> Optional[Account]:
        normalized = email.strip().lower()
        for account in self._accounts.values():
            if account.email.lower() == normalized:
                return copy.deepcopy(account)
        return None

    async def create(self, account: Account) -> Account:
        async with self._lock:
            if await self.get_by_email(account.email):
                raise AccountConflictError("Email already exists")
            if account.account_id in self._accounts:
                raise AccountConflictError(f"Account {account.account_id} already exists")
            self._accounts[account.account_id] = copy.deepcopy(account)

        logger.info("Account created", account_id=account.account_id)
        return copy.deepcopy(account)

    async def update(
        self,
        account_id: str,
        fields: Dict[str, Any],
        expected_status: Optional[Account2FAStatus] = None,
        expected_version: Optional[int] = None,
    ) -> Account:
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        async with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                raise AccountNotFoundError(f"Account {account_id} not found")

            if expected_status is not None and account.otp_status != expected_status:
                logger.warning(
                    "Concurrent two-factor update rejected",
                    account_id=account_id,
                    expected_status=expected_status.value,
                    actual_status=account.otp_status.value,
                )
                raise AccountConflictError(
                    "Account two-factor status changed concurrently"
                )

            if expected_version is not None and account.version != expected_version:
                logger.warning(
                    "Concurrent account update rejected",
                    account_id=account_id,
                    expected_version=expected_version,
                    actual_version=account.version,
                )
                raise AccountConflictError("Account changed concurrently")

            for name, value in fields.items():
                setattr(account, name, value)
            account.version += 1
            account.updated_at = datetime.now(timezone.utc)

            return copy.deepcopy(account)


_account_store_instance: Optional[AccountStore] = None


def get_account_store() -> AccountStore:
    """Get the process-wide default store used by the HTTP layer."""
    global _account_store_instance

    if _account_store_instance is None:
        _account_store_instance = InMemoryAccountStore()

    return _account_store_instance


def reset_account_store():
    global _account_store_instance
    _account_store_instance = None
