import logging
from pathlib import Path, PurePosixPath
from typing import Dict, Optional, Set
from mediamirror.domain.events import FileSkipped
from mediamirror.infrastructure.event_bus import EventBus


class OutputPathResolver:
    """Maps source relative paths onto the output tree.

    Holds the run-scoped collision counter: the first claim of a destination
    gets the bare name, later claims get '.1', '.2', ... before the extension.
    Claims are made while planning, before any task is submitted.
    """

    def __init__(self, output_dir: Path, event_bus: Optional[EventBus] = None):
        self.output_dir = Path(output_dir)
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)
        self._claim_counts: Dict[Path, int] = {}
        self._claimed: Set[Path] = set()

    def resolve(self, relative_path: str, new_extension: Optional[str] = None) -> Path:
        rel = PurePosixPath(relative_path)
        if new_extension is not None:
            rel = rel.with_suffix(f".{new_extension}")
        return self.output_dir.joinpath(*rel.parts)

    def resolve_with_collision_suffix(self, relative_path: str, new_extension: Optional[str], ordinal: int) -> Path:
        base = self.resolve(relative_path, new_extension)
        if ordinal == 0:
            return base
        return base.with_name(f"{base.stem}.{ordinal}{base.suffix}")

    def claim(self, relative_path: str, new_extension: Optional[str] = None) -> Path:
        """Reserves a collision-free destination for one output file."""
        base = self.resolve(relative_path, new_extension)
        count = self._claim_counts.get(base, 0)
        self._claim_counts[base] = count + 1

        ordinal = count
        candidate = self.resolve_with_collision_suffix(relative_path, new_extension, ordinal)
        while candidate in self._claimed:
            ordinal += 1
            candidate = self.resolve_with_collision_suffix(relative_path, new_extension, ordinal)

        self._claimed.add(candidate)
        return candidate

    def should_skip(self, destination: Path, reason: str = "target already exists") -> bool:
        """True when the destination exists; such actions are skipped, not overwritten."""
        if not destination.exists():
            return False
        self.logger.info(f"SKIPPING: {reason}: {destination}")
        if self.event_bus:
            self.event_bus.publish(FileSkipped(path=destination, reason=reason))
        return True
