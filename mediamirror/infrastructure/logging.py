import logging
from pathlib import Path
from typing import Optional

LOG_FILE_NAME = "mediamirror.log"

def setup_logging(output_dir: Optional[Path], debug: bool = False, log_path: Optional[Path] = None) -> logging.Logger:
    """
    Setup logging configuration for mediamirror.

    Writes to <output_dir>/mediamirror.log. A dry run has no output directory;
    unless log_path is given it logs to stderr so the run stays write-free.
    Returns configured logger instance.

    Args:
        output_dir: Root of the mirrored output tree, or None for a dry run
        debug: If True, enable DEBUG level logging
        log_path: Optional path to log file (overrides output_dir)
    """
    if log_path:
        log_file: Optional[Path] = Path(log_path)
    elif output_dir is not None:
        log_file = Path(output_dir) / LOG_FILE_NAME
    else:
        log_file = None

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file)
    else:
        handler = logging.StreamHandler()

    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[handler],
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger(__name__)
    target = log_file if log_file is not None else "stderr"
    logger.info(f"Logging initialized: {target} (debug={'ON' if debug else 'OFF'})")

    return logger
