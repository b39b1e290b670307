from pathlib import Path
from typing import Dict, List


class MediaMirrorError(Exception):
    """Base class for errors raised by the mirroring pipeline."""


class NotADirectory(MediaMirrorError):
    """Inventory root does not designate a directory."""

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(f"Told to inventory a path that is not a directory: {self.path}")


class CyclicDirectory(MediaMirrorError):
    """A directory is reachable from itself (usually through a symlink)."""

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(f"Directory cycle detected at: {self.path}")


class ProbeError(MediaMirrorError):
    """ffprobe could not inspect a file."""


class UnknownCodec(MediaMirrorError):
    """Subtitle codec is in neither the convertible nor the unconvertible list."""

    def __init__(self, codec_name: str, path: Path):
        self.codec_name = codec_name
        self.path = Path(path)
        super().__init__(f"Unknown subtitle codec '{codec_name}' in {self.path}")


class TaskError(MediaMirrorError):
    """A single copy/encode action failed."""


class StreamValidationError(MediaMirrorError):
    """Aggregated stream-policy violations for a whole batch.

    Raised once, after every candidate file has been probed, so the operator
    can fix the full set of offending files in one pass.
    """

    def __init__(self, violations: Dict[str, List[Path]]):
        self.violations = {reason: list(paths) for reason, paths in violations.items()}
        reasons = [
            f"{{{reason}: [{', '.join(str(p) for p in paths)}]}}"
            for reason, paths in self.violations.items()
        ]
        super().__init__(f"Found files we cannot encode -- {', '.join(reasons)}")
