from __future__ import annotations

import logging
from pathlib import Path

import pytest

from tabnav.logging import log_dir_for, setup_logging
from tabnav.settings import Settings, load_settings


def test_settings_defaults(monkeypatch):
    for name in ("TABNAV_HISTORY_CAPACITY", "TABNAV_DOUBLE_PRESS_MS", "TABNAV_SWITCH_COMMAND"):
        monkeypatch.delenv(name, raising=False)

    s = Settings()
    assert s.TABNAV_HISTORY_CAPACITY == 20
    assert s.TABNAV_DOUBLE_PRESS_MS == 300
    assert s.double_press_window == pytest.approx(0.3)
    assert s.TABNAV_SWITCH_COMMAND == "switch-to-last-tab"
    assert s.TABNAV_LOG_ACCESS is False


def test_settings_env_override(monkeypatch):
    monkeypatch.setenv("TABNAV_DOUBLE_PRESS_MS", "450")
    monkeypatch.setenv("TABNAV_HISTORY_CAPACITY", "7")

    s = Settings()
    assert s.double_press_window == pytest.approx(0.45)
    assert s.TABNAV_HISTORY_CAPACITY == 7


def test_settings_reject_zero_capacity(monkeypatch):
    monkeypatch.setenv("TABNAV_HISTORY_CAPACITY", "0")
    with pytest.raises(ValueError):
        Settings()


def test_load_settings_creates_store_dir(tmp_path: Path, monkeypatch):
    db_path = tmp_path / "nested" / "state" / "tabnav.db"
    monkeypatch.setenv("TABNAV_STORE_PATH", str(db_path))

    s = load_settings()
    assert s.TABNAV_STORE_PATH == db_path
    assert db_path.parent.is_dir()


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    app_logger = logging.getLogger("tabnav")
    saved_app_level = app_logger.level
    access = logging.getLogger("uvicorn.access")
    saved_access = access.disabled
    yield
    for h in root.handlers:
        if h not in saved_handlers:
            h.close()
    root.handlers = saved_handlers
    root.setLevel(saved_level)
    app_logger.setLevel(saved_app_level)
    access.disabled = saved_access


def test_setup_logging_writes_to_log_dir(tmp_path: Path, restore_logging):
    s = Settings(TABNAV_LOG_DIR=tmp_path / "_logs", TABNAV_LOG_LEVEL="debug")

    log_file = setup_logging(s)

    assert log_file == (tmp_path / "_logs" / "tabnav.log").resolve()
    assert logging.getLogger("tabnav").level == logging.DEBUG
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("uvicorn").level == logging.INFO
    assert logging.getLogger("uvicorn.access").disabled is True

    logging.getLogger("tabnav.engine").debug("hello from the engine")
    logging.getLogger("some.library").info("library chatter")
    for h in logging.getLogger().handlers:
        h.flush()
    text = log_file.read_text(encoding="utf-8")
    assert "logging to" in text
    assert "hello from the engine" in text
    assert "library chatter" not in text


def test_relative_log_dir_follows_working_directory(tmp_path: Path, monkeypatch, restore_logging):
    monkeypatch.chdir(tmp_path)
    s = Settings(TABNAV_LOG_DIR=Path("logs"))

    assert log_dir_for(s) == (tmp_path / "logs").resolve()
    assert setup_logging(s) == (tmp_path / "logs" / "tabnav.log").resolve()
    assert (tmp_path / "logs").is_dir()


def test_unknown_log_level_falls_back_to_info(tmp_path: Path, restore_logging):
    setup_logging(Settings(TABNAV_LOG_DIR=tmp_path, TABNAV_LOG_LEVEL="chatty"))
    assert logging.getLogger("tabnav").level == logging.INFO


def test_setup_logging_can_keep_access_log(tmp_path: Path, restore_logging):
    s = Settings(TABNAV_LOG_DIR=tmp_path / "_logs", TABNAV_LOG_ACCESS=True)
    logging.getLogger("uvicorn.access").disabled = True

    setup_logging(s)
    assert logging.getLogger("uvicorn.access").disabled is False
