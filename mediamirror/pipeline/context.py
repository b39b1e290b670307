from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from mediamirror.infrastructure.event_bus import EventBus
from mediamirror.pipeline.output_paths import OutputPathResolver
from mediamirror.pipeline.task_runner import ParallelTaskRunner


@dataclass
class RunContext:
    """Per-run state shared by the mutation stages.

    Owns the collision counter (via the resolver) and the worker pool settings,
    so nothing about a run lives in module-level state.
    """
    output_dir: Path
    resolver: OutputPathResolver
    runner: ParallelTaskRunner
    verbose: bool = False

    @classmethod
    def create(cls, output_dir: Path, concurrency: int, event_bus: Optional[EventBus] = None,
               verbose: bool = False) -> "RunContext":
        output_dir = Path(output_dir)
        return cls(
            output_dir=output_dir,
            resolver=OutputPathResolver(output_dir, event_bus=event_bus),
            runner=ParallelTaskRunner(concurrency, event_bus=event_bus),
            verbose=verbose,
        )
