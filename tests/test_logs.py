import logging
from pathlib import Path

from dashboard_auth.config import Settings
from dashboard_auth.logs import AuthLog


def test_log_file_is_opened_on_first_record(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "auth.log"
    auth_log = AuthLog("dashboard_auth.test_lazy", log_file=log_path)
    try:
        assert not log_path.exists()

        auth_log.child("sessions").info("session abc created")
        auth_log.flush()

        assert log_path.exists()
        content = log_path.read_text(encoding="utf-8")
        assert "session abc created" in content
        assert "[dashboard_auth.test_lazy.sessions]" in content
    finally:
        auth_log.close()


def test_close_detaches_handlers(tmp_path: Path) -> None:
    log_path = tmp_path / "auth.log"
    auth_log = AuthLog("dashboard_auth.test_close", log_file=log_path)
    auth_log.logger.info("before close")

    auth_log.close()
    auth_log.logger.info("after close")

    content = log_path.read_text(encoding="utf-8")
    assert "before close" in content
    assert "after close" not in content
    assert auth_log.logger.handlers == []


def test_from_settings_without_file_adds_no_handler() -> None:
    auth_log = AuthLog.from_settings(Settings(log_level="debug"))

    assert auth_log.logger.level == logging.DEBUG
    auth_log.close()
