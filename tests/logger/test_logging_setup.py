import logging

from finanzonline.logging.logging_setup import ColoredFormatter, CustomFormatter, setup_logging


def make_record(level: int, msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord("finanzonline", level, __file__, 1, msg, args, None)


def test_colored_formatter_colors_by_level():
    formatter = ColoredFormatter("UTC", "%(levelname)s - %(message)s")

    warning = formatter.format(make_record(logging.WARNING, "Logout failed: %s", "rc -2"))
    error = formatter.format(make_record(logging.ERROR, "SOAP request failed"))
    info = formatter.format(make_record(logging.INFO, "Logged in to FinanzOnline."))

    assert warning == "\033[33mWARNING - ⚠️ Logout failed: rc -2\033[0m"
    assert error.startswith("\033[31mERROR - ⛔ SOAP request failed")
    assert info == "INFO - Logged in to FinanzOnline."


def test_custom_formatter_writes_plain_text_in_timezone():
    formatter = CustomFormatter("Europe/Vienna", "%(asctime)s %(message)s")
    record = make_record(logging.WARNING, "Session expired")
    record.created = 0

    assert formatter.format(record) == "1970-01-01T01:00:00+01:00 ⚠️ Session expired"


def test_setup_logging_returns_package_logger(tmp_path):
    logger = setup_logging(log_dir=str(tmp_path))

    logger.warning("written to file")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert logger.name == "finanzonline"
    assert "written to file" in (tmp_path / "finanzonline.log").read_text(encoding="utf-8")
