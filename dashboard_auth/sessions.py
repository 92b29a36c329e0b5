from collections.abc import Callable
from datetime import datetime

from sqlalchemy import DateTime, delete, func, literal, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.sql.expression import Executable

from dashboard_auth.errors import StorageError
from dashboard_auth.models.session_record import SessionRecord

Clock = Callable[[], datetime]


class SessionStore:
    """Data access for the ``admin_sessions`` table.

    Every comparison against "now" is evaluated by the database: either the
    server's ``now()`` or, when a clock is injected, a bound timestamp taken
    from that clock. ``current_time()`` reads the same reference, so callers
    that compute ``expires_at`` from it stay on the clock used for validity
    checks. All SQLAlchemy failures are re-raised as ``StorageError``.
    """

    def __init__(self, db: Session, *, clock: Clock | None = None) -> None:
        self._db = db
        self._clock = clock

    def _now(self) -> ColumnElement[datetime]:
        if self._clock is None:
            return func.now()
        return literal(self._clock(), DateTime(timezone=True))

    def current_time(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        try:
            return self._db.scalar(select(func.now()))
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise StorageError("failed to read database time") from exc

    def _valid(self, session_id: str) -> list[ColumnElement[bool]]:
        return [
            SessionRecord.session_id == session_id,
            SessionRecord.is_active.is_(True),
            SessionRecord.expires_at > self._now(),
        ]

    def insert(self, record: SessionRecord) -> SessionRecord:
        self._db.add(record)
        try:
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise StorageError("failed to insert session") from exc
        return record

    def find_valid(self, session_id: str) -> SessionRecord | None:
        try:
            return self._db.scalar(select(SessionRecord).where(*self._valid(session_id)))
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise StorageError("failed to look up session") from exc

    def touch_activity(self, session_id: str) -> None:
        # Zero matched rows means the session went invalid since the lookup.
        self._execute(
            update(SessionRecord)
            .where(*self._valid(session_id))
            .values(last_activity=self._now())
            .execution_options(synchronize_session=False),
            "failed to update session activity",
        )

    def revoke(self, session_id: str) -> bool:
        if not session_id:
            return False
        self._execute(
            update(SessionRecord)
            .where(SessionRecord.session_id == session_id)
            .values(is_active=False)
            .execution_options(synchronize_session=False),
            "failed to revoke session",
        )
        return True

    def revoke_all_for_user(self, user_id: int) -> int:
        return self._execute(
            update(SessionRecord)
            .where(SessionRecord.user_id == user_id, SessionRecord.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session=False),
            "failed to revoke user sessions",
        )

    def purge_expired(self) -> int:
        return self._execute(
            delete(SessionRecord)
            .where(SessionRecord.expires_at < self._now())
            .execution_options(synchronize_session=False),
            "failed to purge expired sessions",
        )

    def count_active_for_user(self, user_id: int) -> int:
        try:
            count = self._db.scalar(
                select(func.count(SessionRecord.id)).where(
                    SessionRecord.user_id == user_id,
                    SessionRecord.is_active.is_(True),
                    SessionRecord.expires_at > self._now(),
                )
            )
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise StorageError("failed to count sessions") from exc
        return int(count or 0)

    def _execute(self, statement: Executable, message: str) -> int:
        try:
            result = self._db.execute(statement)
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise StorageError(message) from exc
        return result.rowcount
