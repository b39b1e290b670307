import concurrent.futures
import logging
import threading
from typing import Dict, Optional, Sequence
from mediamirror.domain.events import TaskCompleted, TaskFailed, TaskStarted
from mediamirror.domain.models import Task
from mediamirror.infrastructure.event_bus import EventBus


class ParallelTaskRunner:
    """Runs labeled tasks on a fixed-size thread pool.

    Each task's exception is recorded against its label and never reaches
    the pool or sibling tasks. run() blocks until every task has finished
    and returns the failures; there is no early cancellation.

    Args:
        concurrency: Number of worker threads (positive).
        event_bus: Optional bus for TaskStarted/TaskCompleted/TaskFailed notices.
    """

    def __init__(self, concurrency: int, event_bus: Optional[EventBus] = None):
        if not isinstance(concurrency, int) or concurrency < 1:
            raise ValueError(f"concurrency must be a positive integer, got {concurrency!r}")
        self.concurrency = concurrency
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)

    def _publish(self, event, verbose: bool) -> None:
        if verbose and self.event_bus:
            self.event_bus.publish(event)

    def run(self, tasks: Sequence[Task], verbose: bool = False) -> Dict[str, Exception]:
        errors: Dict[str, Exception] = {}
        errors_lock = threading.Lock()

        def _execute(task: Task) -> None:
            self.logger.debug(f"TASK_START: {task.label}")
            try:
                self._publish(TaskStarted(label=task.label), verbose)
                task.action()
            except Exception as e:
                self.logger.error(f"Task failed: {task.label}: {e}")
                with errors_lock:
                    errors[task.label] = e
                self._publish(TaskFailed(label=task.label, error_message=str(e)), verbose)
                return
            self.logger.debug(f"TASK_END: {task.label}")
            self._publish(TaskCompleted(label=task.label), verbose)

        if not tasks:
            return errors

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.concurrency) as executor:
            futures = {executor.submit(_execute, task): task for task in tasks}
            for future in concurrent.futures.as_completed(futures):
                # Raised by an event subscriber after the action itself finished.
                exc = future.exception()
                if exc is not None:
                    label = futures[future].label
                    self.logger.error(f"Worker raised outside its task: {label}: {exc}")
                    with errors_lock:
                        errors.setdefault(label, exc)

        self.logger.info(f"Ran {len(tasks)} task(s) on {self.concurrency} worker(s): {len(errors)} failed")
        return errors
