import logging
import os
from pathlib import Path
from mediamirror.infrastructure.ffmpeg import TMP_SUFFIX

class HousekeepingService:
    """Service for cleaning up leftovers of interrupted encodes."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def cleanup_temp_files(self, directory: Path) -> int:
        """Recursively removes in-progress encode outputs. Returns how many were removed."""
        removed = 0
        for root, dirs, files in os.walk(directory):
            for file in files:
                if file.endswith(TMP_SUFFIX):
                    try:
                        (Path(root) / file).unlink()
                        removed += 1
                    except OSError as e:
                        self.logger.warning(f"Could not remove stale temp file {file}: {e}")
        if removed:
            self.logger.info(f"Removed {removed} stale temp files under {directory}")
        return removed
