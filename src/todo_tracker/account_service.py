from __future__ import annotations

import logging
from typing import Optional

from .errors import AccountAlreadyExistsError, AccountNotFoundError, InvalidInputError
from .models import Account
from .repositories import AccountRepository, TaskRepository
from .security import CredentialVerifier

logger = logging.getLogger(__name__)

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 4
PASSWORD_MAX_LENGTH = 100


# PUBLIC_INTERFACE
class AccountService:
    """
    Registration, credential checks and account removal.

    Removing an account removes its todos first, inside the todo store's
    atomic block, so no todo outlives its owner.
    """

    def __init__(
        self,
        accounts: AccountRepository,
        tasks: TaskRepository,
        verifier: CredentialVerifier,
    ) -> None:
        self._accounts = accounts
        self._tasks = tasks
        self._verifier = verifier

    def register(self, username: str, password: str, confirm_password: Optional[str] = None) -> Account:
        """
        Create an account with a hashed password.

        Raises:
            InvalidInputError: username/password out of bounds or confirmation mismatch
            AccountAlreadyExistsError: username taken
        """
        username = (username or "").strip()
        if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
            raise InvalidInputError(
                f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters",
                field="username",
            )
        if not password or not password.strip() or not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
            raise InvalidInputError(
                f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters",
                field="password",
            )
        if confirm_password is not None and confirm_password != password:
            raise InvalidInputError("Passwords do not match", field="confirm_password")

        logger.info("Registering account: %s", username)
        if self._accounts.exists_by_username(username):
            logger.warning("Registration failed, username already exists: %s", username)
            raise AccountAlreadyExistsError.for_username(username)

        password_hash = self._verifier.hash(password)
        try:
            account = self._accounts.add(username, password_hash)
        except AccountAlreadyExistsError:
            logger.warning("Registration lost to a concurrent one for username: %s", username)
            raise
        logger.info("Account registered: %s id=%s", account.username, account.id)
        return account

    def find_by_username(self, username: Optional[str]) -> Optional[Account]:
        if username is None or not username.strip():
            return None
        return self._accounts.get_by_username(username.strip())

    def authenticate(self, username: Optional[str], password: Optional[str]) -> Optional[Account]:
        """Return the account when the password matches its stored hash, else None."""
        if username is None or password is None:
            return None
        account = self.find_by_username(username)
        if account is None:
            logger.warning("Authentication failed, unknown account: %s", username)
            return None
        if not self._verifier.verify(password, account.password_hash):
            logger.warning("Authentication failed, wrong password: %s", username)
            return None
        logger.debug("Authentication succeeded: %s", username)
        return account

    def delete_account(self, username: str) -> int:
        """
        Delete an account together with every todo it owns.

        Returns:
            The number of todos removed.
        """
        # Serialized with create_todo, which looks up the owner and inserts in one block.
        with self._tasks.atomic():
            account = self.find_by_username(username)
            if account is None or account.id is None:
                raise AccountNotFoundError.for_username(username)
            removed = self._tasks.delete_by_owner(account.id)
            self._accounts.delete(account.id)

        logger.info("Account deleted: %s (%s todos removed)", username, removed)
        return removed
