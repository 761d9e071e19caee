import logging
from pathlib import Path
from typing import Any

from legen.common.config import Config


def test_config_defaults(monkeypatch: Any) -> None:
    for name in (
        "LEGEN_SERVER_HOST",
        "LEGEN_SERVER_PORT",
        "LEGEN_INSTITUTION_NAME",
        "LEGEN_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    config = Config()
    assert config.INSTITUTION_NAME == "Mepco Schlenk Engineering College"
    assert config.INSTITUTION_LOCATION == "Sivakasi"
    assert config.INSTITUTION_MARKER == "www.mepcoeng.ac.in"
    assert config.COLLEGE_MAIL_DOMAIN == "mepcoeng.ac.in"
    assert config.RSA_KEY_SIZE == 2048  # noqa: PLR2004
    assert config.PSS_SALT_LENGTH == 32  # noqa: PLR2004
    assert config.SERVER_URL == "http://127.0.0.1:8000"
    assert config.LOG_LEVEL == logging.INFO


def test_config_env_overrides(monkeypatch: Any, tmp_path: Path) -> None:
    monkeypatch.setenv("LEGEN_SERVER_HOST", "0.0.0.0")
    monkeypatch.setenv("LEGEN_SERVER_PORT", "9001")
    monkeypatch.setenv("LEGEN_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("LEGEN_LOG_LEVEL", "debug")
    monkeypatch.setenv("LEGEN_INSTITUTION_NAME", "Test College")

    config = Config()
    assert config.SERVER_URL == "http://0.0.0.0:9001"
    assert config.LETTERS_FILE_PATH == tmp_path / "letters.json"
    assert config.EMAILS_FILE_PATH == tmp_path / "emails.json"
    assert config.DIRECTORY_FILE_PATH == tmp_path / "directory.json"
    assert config.LOG_LEVEL == logging.DEBUG
    assert config.INSTITUTION_NAME == "Test College"


def test_unknown_log_level_falls_back_to_info(monkeypatch: Any) -> None:
    monkeypatch.setenv("LEGEN_LOG_LEVEL", "chatty")
    assert Config().LOG_LEVEL == logging.INFO


def test_configure_logging_is_idempotent() -> None:
    from legen.common.logging_utils import configure_logging  # noqa: PLC0415

    first = configure_logging(logging.DEBUG)
    second = configure_logging(logging.DEBUG)
    assert first is second
    assert len(first.handlers) == 1
    assert logging.getLogger("pypdf").level == logging.WARNING
