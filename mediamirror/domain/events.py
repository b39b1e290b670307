"""Domain events for the mirroring pipeline.

Events flow through the EventBus so the pipeline never talks to the console
directly. See `infrastructure/event_bus.py` for the pub/sub mechanism.
"""

from pathlib import Path
from typing import Dict, List
from pydantic import BaseModel, Field


class Event(BaseModel):
    """Base class for all domain events."""

    pass


class StageStarted(Event):
    """Emitted when the orchestrator enters a pipeline stage."""

    stage: str
    count: int = 0


class FileSkipped(Event):
    """Emitted when a destination already exists and the action is skipped."""

    path: Path
    reason: str


class TaskEvent(Event):
    """Base class for events about a single labeled task."""

    label: str


class TaskStarted(TaskEvent):
    pass


class TaskCompleted(TaskEvent):
    pass


class TaskFailed(TaskEvent):
    """Emitted when a task action raised; the batch keeps going."""

    error_message: str


class ValidationFailed(Event):
    """Emitted with the full violation map before the run aborts."""

    violations: Dict[str, List[Path]] = Field(default_factory=dict)


class RunFinished(Event):
    """Emitted once the last stage has drained."""

    dry_run: bool = False
    directories: int = 0
    copied: int = 0
    videos_encoded: int = 0
    subtitles_converted: int = 0
    skipped: int = 0
    failed: int = 0
