"""Unit tests for logging infrastructure."""
import logging
from mediamirror.infrastructure.logging import setup_logging, LOG_FILE_NAME


def test_setup_logging_creates_log_file(tmp_path):
    """Log file lands in the output directory."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()

    logger = setup_logging(output_dir, debug=False)

    assert isinstance(logger, logging.Logger)
    assert (output_dir / LOG_FILE_NAME).exists()


def test_setup_logging_creates_output_dir(tmp_path):
    output_dir = tmp_path / "missing_output"

    setup_logging(output_dir, debug=False)

    assert output_dir.is_dir()


def test_setup_logging_debug_mode(tmp_path):
    logger = setup_logging(tmp_path, debug=True)
    assert logger.getEffectiveLevel() == logging.DEBUG


def test_setup_logging_normal_mode(tmp_path):
    logger = setup_logging(tmp_path, debug=False)
    assert logger.getEffectiveLevel() == logging.INFO


def test_setup_logging_custom_log_path(tmp_path):
    log_path = tmp_path / "logs" / "run.log"

    setup_logging(tmp_path / "out", debug=False, log_path=log_path)
    logging.getLogger("mediamirror.test").info("custom path message")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "custom path message" in log_path.read_text()
    assert not (tmp_path / "out").exists()


def test_setup_logging_dry_run_writes_nothing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    setup_logging(None, debug=False)

    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert not isinstance(handlers[0], logging.FileHandler)
    assert list(tmp_path.iterdir()) == []
