import logging
from pathlib import Path

from dashboard_auth.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class AuthLog:
    """Owns the logger handed to the auth components.

    The file handler is created with ``delay=True`` so the log file is only
    opened when the first record is written. ``close()`` flushes and detaches
    the handlers this object added; call it on shutdown.
    """

    def __init__(
        self,
        name: str = "dashboard_auth",
        *,
        level: str | int = logging.INFO,
        log_file: str | Path | None = None,
    ) -> None:
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self._handlers: list[logging.Handler] = []
        if log_file:
            path = Path(log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, encoding="utf-8", delay=True)
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            self.logger.addHandler(handler)
            self._handlers.append(handler)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthLog":
        return cls(level=settings.log_level.upper(), log_file=settings.log_file)

    def child(self, suffix: str) -> logging.Logger:
        return self.logger.getChild(suffix)

    def flush(self) -> None:
        for handler in self._handlers:
            handler.flush()

    def close(self) -> None:
        for handler in self._handlers:
            handler.flush()
            handler.close()
            self.logger.removeHandler(handler)
        self._handlers.clear()
