"""
Tests for logger configuration.
"""
import logging
from logging.handlers import RotatingFileHandler

from fieldservice import config
from fieldservice.logger import setup_logger


def test_rotation_settings_come_from_config(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "LOG_MAX_MB", 2)
    monkeypatch.setattr(config, "LOG_BACKUP_COUNT", 3)
    monkeypatch.setattr(config, "LOG_LEVEL", "WARNING")

    log = setup_logger("fieldservice.test-rotation", log_file=str(tmp_path / "logs" / "app.log"))

    assert log.level == logging.WARNING
    [file_handler] = [h for h in log.handlers if isinstance(h, RotatingFileHandler)]
    assert file_handler.maxBytes == 2 * 1024 * 1024
    assert file_handler.backupCount == 3
    assert (tmp_path / "logs").is_dir()
    file_handler.close()


def test_setup_twice_does_not_stack_handlers():
    log = setup_logger("fieldservice.test-handlers", log_file="")
    setup_logger("fieldservice.test-handlers", log_file="")
    assert len(log.handlers) == 1
