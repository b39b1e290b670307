import threading
from typing import Optional
from rich.console import Console
from rich.table import Table
from mediamirror.infrastructure.event_bus import EventBus
from mediamirror.domain.events import (
    StageStarted, FileSkipped, TaskStarted, TaskCompleted, TaskFailed,
    ValidationFailed, RunFinished,
)

STAGE_TITLES = {
    "inspect": "Probing video streams",
    "directories": "Creating directories",
    "copy": "Copying files",
    "encode": "Encoding videos",
    "subtitles": "Converting subtitles",
}


class ConsoleReporter:
    """Subscribes to EventBus and prints run progress with rich."""

    def __init__(self, bus: EventBus, console: Optional[Console] = None):
        self.bus = bus
        self.console = console or Console()
        self._lock = threading.Lock()  # Task events arrive from worker threads
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(StageStarted, self.on_stage_started)
        self.bus.subscribe(FileSkipped, self.on_file_skipped)
        self.bus.subscribe(TaskStarted, self.on_task_started)
        self.bus.subscribe(TaskCompleted, self.on_task_completed)
        self.bus.subscribe(TaskFailed, self.on_task_failed)
        self.bus.subscribe(ValidationFailed, self.on_validation_failed)
        self.bus.subscribe(RunFinished, self.on_run_finished)

    def _print(self, *args, **kwargs):
        with self._lock:
            self.console.print(*args, **kwargs)

    def on_stage_started(self, event: StageStarted):
        title = STAGE_TITLES.get(event.stage, event.stage)
        self._print(f"[bold cyan]{title}[/] ({event.count})")

    def on_file_skipped(self, event: FileSkipped):
        self._print(f"[yellow]SKIPPING:[/] {event.reason}: {event.path}", markup=True, highlight=False)

    def on_task_started(self, event: TaskStarted):
        self._print(f"Running: {event.label}", markup=False, highlight=False)

    def on_task_completed(self, event: TaskCompleted):
        self._print(f"[green]Complete:[/] {event.label}", highlight=False)

    def on_task_failed(self, event: TaskFailed):
        self._print(f"[red]Error:[/] {event.label}", highlight=False)

    def on_validation_failed(self, event: ValidationFailed):
        self._print("[bold red]Found files we cannot encode:[/]")
        for reason, paths in event.violations.items():
            self._print(f"  [red]{reason}[/] ({len(paths)})")
            for path in paths:
                self._print(f"    {path}", markup=False, highlight=False)

    def on_run_finished(self, event: RunFinished):
        table = Table(title="Dry run summary" if event.dry_run else "Run summary", show_header=False)
        table.add_column("Item")
        table.add_column("Count", justify="right")
        table.add_row("Directories", str(event.directories))
        if not event.dry_run:
            table.add_row("Copied", str(event.copied))
            table.add_row("Videos encoded", str(event.videos_encoded))
            table.add_row("Subtitles converted", str(event.subtitles_converted))
            table.add_row("Skipped (already exist)", str(event.skipped))
            table.add_row("Failed", f"[red]{event.failed}[/]" if event.failed else "0")
        self._print(table)
