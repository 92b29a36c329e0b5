import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from dashboard_auth.errors import StorageError, UserValidationError
from dashboard_auth.models.user import User
from dashboard_auth.security import hash_password, verify_password

MIN_PASSWORD_LENGTH = 6

CredentialStatus = Literal["ok", "invalid_credentials", "account_disabled", "storage_failure"]


@dataclass(frozen=True)
class UserRecord:
    id: int
    username: str
    email: str | None
    full_name: str | None
    is_active: bool
    last_login: datetime | None


@dataclass(frozen=True)
class CredentialResult:
    status: CredentialStatus
    user: UserRecord | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def success(cls, user: UserRecord) -> "CredentialResult":
        return cls(status="ok", user=user)

    @classmethod
    def invalid(cls) -> "CredentialResult":
        return cls(status="invalid_credentials")

    @classmethod
    def disabled(cls) -> "CredentialResult":
        return cls(status="account_disabled")

    @classmethod
    def storage_failure(cls, error: Exception) -> "CredentialResult":
        return cls(status="storage_failure", error=error)


class UserDirectory(Protocol):
    def find_user_by_id(self, user_id: int) -> UserRecord | None: ...

    def verify_password(self, username: str, password: str) -> CredentialResult: ...

    def set_active(self, user_id: int, is_active: bool) -> UserRecord | None: ...


def to_user_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        is_active=user.is_active,
        last_login=user.last_login,
    )


class SqlUserDirectory:
    """User directory backed by the ``users`` table.

    ``verify_password`` never raises: every outcome, including a database
    failure, is reported through :class:`CredentialResult`.
    """

    def __init__(
        self,
        db: Session,
        *,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._db = db
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock or (lambda: datetime.now(UTC))

    def find_user_by_id(self, user_id: int) -> UserRecord | None:
        try:
            user = self._db.get(User, user_id)
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise StorageError("failed to load user by id") from exc
        if user is None:
            return None
        return to_user_record(user)

    def find_user_by_username(self, username: str) -> UserRecord | None:
        try:
            user = self._db.scalar(select(User).where(User.username == username))
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise StorageError("failed to load user by username") from exc
        if user is None:
            return None
        return to_user_record(user)

    def verify_password(self, username: str, password: str) -> CredentialResult:
        try:
            user = self._db.scalar(select(User).where(User.username == username))
            if user is None:
                self._logger.info("login rejected: unknown user %r", username)
                return CredentialResult.invalid()
            if not user.is_active:
                self._logger.warning("login rejected: account %r is disabled", username)
                return CredentialResult.disabled()
            if not user.password_hash:
                self._logger.warning("login rejected: account %r has no password set", username)
                return CredentialResult.invalid()
            if not verify_password(password, user.password_hash):
                self._logger.info("login rejected: wrong password for %r", username)
                return CredentialResult.invalid()

            user.last_login = self._clock()
            self._db.add(user)
            self._db.commit()
            self._db.refresh(user)
        except SQLAlchemyError as exc:
            self._db.rollback()
            error = StorageError("credential lookup failed")
            error.__cause__ = exc
            return CredentialResult.storage_failure(error)

        self._logger.info("login accepted for %r", username)
        return CredentialResult.success(to_user_record(user))

    def create_user(
        self,
        username: str,
        password: str,
        *,
        email: str | None = None,
        full_name: str | None = None,
        is_active: bool = True,
    ) -> UserRecord:
        username = username.strip()
        if not username:
            raise UserValidationError("username is required")
        if not password:
            raise UserValidationError("password is required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise UserValidationError(
                f"password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        user = User(
            username=username,
            email=email,
            full_name=full_name,
            password_hash=hash_password(password),
            is_active=is_active,
        )
        self._db.add(user)
        try:
            self._db.commit()
        except IntegrityError as exc:
            self._db.rollback()
            raise UserValidationError(f"user '{username}' already exists") from exc
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise StorageError("failed to create user") from exc
        self._db.refresh(user)
        return to_user_record(user)

    def set_active(self, user_id: int, is_active: bool) -> UserRecord | None:
        try:
            user = self._db.get(User, user_id)
            if user is None:
                return None
            user.is_active = is_active
            self._db.add(user)
            self._db.commit()
            self._db.refresh(user)
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise StorageError("failed to update user") from exc
        return to_user_record(user)
