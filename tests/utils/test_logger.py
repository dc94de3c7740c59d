import datetime
import logging
import logging.handlers

from videotube.utils import logger as logger_module


def test_setup_logger_adds_handlers_once():
    first = logger_module.setup_logger("tests.logger")
    second = logger_module.setup_logger("tests.logger")

    assert first is second
    assert len(second.handlers) == 2
    assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in second.handlers)


def test_cleanup_old_logs_removes_only_expired_date_directories(tmp_path, monkeypatch):
    monkeypatch.setattr(logger_module, "LOG_DIR", tmp_path)

    old_day = (datetime.datetime.now() - datetime.timedelta(days=30)).strftime("%Y-%m-%d")
    today = datetime.datetime.now().strftime("%Y-%m-%d")
    for day in (old_day, today):
        (tmp_path / day).mkdir()
        (tmp_path / day / f"videotube_{day}_00-00-00.log").write_text("line\n")
    (tmp_path / "not-a-date").mkdir()

    deleted = logger_module.cleanup_old_logs(keep_days=7)

    assert deleted == 1
    assert not (tmp_path / old_day).exists()
    assert (tmp_path / today).exists()
    assert (tmp_path / "not-a-date").exists()
    assert len(logger_module.list_log_files()) == 1


def test_log_level_names_are_case_insensitive_with_info_fallback():
    assert logger_module._get_log_level("debug") == logging.DEBUG
    assert logger_module._get_log_level("Warning") == logging.WARNING
    assert logger_module._get_log_level("verbose") == logging.INFO


def test_explicit_level_overrides_environment_default():
    log = logger_module.setup_logger("tests.logger.quiet", level="ERROR")

    assert log.level == logging.ERROR
