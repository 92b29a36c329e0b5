import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from dashboard_auth.errors import AccountDisabledError, StorageError
from dashboard_auth.models.session_record import SessionRecord
from dashboard_auth.security import generate_session_token, session_expiry, token_fingerprint
from dashboard_auth.sessions import Clock, SessionStore
from dashboard_auth.users import CredentialResult, UserDirectory, UserRecord

DEFAULT_SESSION_TTL = timedelta(days=7)


@dataclass(frozen=True)
class LoginResult:
    session_id: str
    user: UserRecord
    expires_at: datetime


class SessionManager:
    """Credential checks and the session lifecycle.

    A session moves from created to valid and ends either revoked
    (``destroy_session``) or expired (``expires_at`` passed, later removed by
    ``cleanup_expired_sessions``). The manager returns tokens; placing them in
    a cookie or header is the caller's job.
    """

    def __init__(
        self,
        users: UserDirectory,
        store: SessionStore,
        *,
        logger: logging.Logger | None = None,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Clock | None = None,
    ) -> None:
        self._users = users
        self._store = store
        self._logger = logger or logging.getLogger(__name__)
        self._ttl = ttl
        self._clock = clock

    def _now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        return self._store.current_time()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def check_credentials(self, username: str, password: str) -> CredentialResult:
        if not username or not password:
            return CredentialResult.invalid()
        try:
            return self._users.verify_password(username, password)
        except AccountDisabledError:
            return CredentialResult.disabled()
        except Exception as exc:
            return CredentialResult.storage_failure(exc)

    def validate_credentials(self, username: str, password: str) -> UserRecord | None:
        """Return the user for valid credentials, ``None`` otherwise.

        A disabled account raises ``AccountDisabledError``. Wrong credentials
        and directory failures both yield ``None`` so that callers cannot
        enumerate usernames.
        """
        result = self.check_credentials(username, password)
        if result.status == "account_disabled":
            raise AccountDisabledError(username)
        if result.status == "storage_failure":
            self._logger.error(
                "credential validation failed for %r", username, exc_info=result.error
            )
            return None
        return result.user

    def create_session(
        self,
        user_id: int,
        username: str,
        ip_address: str = "",
        user_agent: str = "",
    ) -> str:
        session_id, _ = self._issue_session(user_id, username, ip_address, user_agent)
        return session_id

    def _issue_session(
        self,
        user_id: int,
        username: str,
        ip_address: str,
        user_agent: str,
    ) -> tuple[str, datetime]:
        issued_at = self._now()
        session_id = generate_session_token()
        expires_at = session_expiry(issued_at, self._ttl)
        record = SessionRecord(
            session_id=session_id,
            user_id=user_id,
            admin_username=username,
            ip_address=ip_address or "",
            user_agent=user_agent or "",
            expires_at=expires_at,
            is_active=True,
            created_at=issued_at,
        )
        self._store.insert(record)
        self._logger.info(
            "session %s created for user %s", token_fingerprint(session_id), user_id
        )
        return session_id, expires_at

    def login(
        self,
        username: str,
        password: str,
        ip_address: str = "",
        user_agent: str = "",
    ) -> LoginResult | None:
        """Validate credentials and open a session in one step.

        Returns ``None`` for rejected credentials; ``AccountDisabledError``
        propagates.
        """
        user = self.validate_credentials(username, password)
        if user is None:
            return None
        session_id, expires_at = self._issue_session(user.id, user.username, ip_address, user_agent)
        return LoginResult(session_id=session_id, user=user, expires_at=expires_at)

    def get_user_from_session(self, session_id: str) -> UserRecord | None:
        if not session_id:
            return None
        record = self._store.find_valid(session_id)
        if record is None:
            return None
        return self._users.find_user_by_id(record.user_id)

    def validate_session(self, session_id: str) -> bool:
        if not session_id:
            return False
        if self._store.find_valid(session_id) is None:
            return False
        try:
            self._store.touch_activity(session_id)
        except StorageError:
            self._logger.warning(
                "could not record activity for session %s",
                token_fingerprint(session_id),
                exc_info=True,
            )
        return True

    def destroy_session(self, session_id: str) -> bool:
        if not session_id:
            return False
        self._store.revoke(session_id)
        self._logger.info("session %s revoked", token_fingerprint(session_id))
        return True

    def revoke_user_sessions(self, user_id: int) -> int:
        revoked = self._store.revoke_all_for_user(user_id)
        self._logger.info("revoked %d session(s) for user %s", revoked, user_id)
        return revoked

    def disable_user(self, user_id: int) -> int | None:
        """Deactivate an account and revoke every session it holds.

        Returns the number of revoked sessions, or ``None`` when the user does
        not exist.
        """
        if self._users.set_active(user_id, False) is None:
            return None
        return self.revoke_user_sessions(user_id)

    def enable_user(self, user_id: int) -> UserRecord | None:
        return self._users.set_active(user_id, True)

    def active_session_count(self, user_id: int) -> int:
        return self._store.count_active_for_user(user_id)

    def cleanup_expired_sessions(self) -> int:
        removed = self._store.purge_expired()
        self._logger.info("removed %d expired session(s)", removed)
        return removed
