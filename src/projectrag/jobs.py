"""Background indexing jobs with per-project progress tracking."""

import dataclasses
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .exceptions import IndexingCancelled
from .scanner import index_directory
from .semantic_index import SemanticIndex
from .utils.logging import get_logger

logger = get_logger(__name__)

Runner = Callable[[threading.Event], None]


class JobState(str, Enum):
    """Lifecycle state of an indexing job."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class IndexingProgress:
    """Snapshot of a project's indexing progress."""

    project: str
    state: JobState = JobState.IDLE
    started_at: float | None = None
    completed_at: float | None = None
    items_done: int = 0
    items_total: int | None = None
    current_item: str | None = None
    last_error: str | None = None


@dataclass
class StartResult:
    """Result of asking for a job to start."""

    status: str  # "started" or "already_running"
    state: JobState
    progress: IndexingProgress


@dataclass
class _Job:
    progress: IndexingProgress
    cancel_event: threading.Event
    thread: threading.Thread | None = None


class IndexingJobManager:
    """
    Runs at most one indexing job per project in a background thread.

    Runners receive a ``threading.Event`` that is set when the job is
    cancelled; they are expected to check it between units of work.
    """

    def __init__(self):
        self._jobs: dict[str, _Job] = {}
        self._lock = threading.Lock()

    def get_progress(self, project: str) -> IndexingProgress:
        """Get a copy of the project's progress (idle if it never ran)."""
        with self._lock:
            job = self._jobs.get(project)
            if job is None:
                return IndexingProgress(project=project)
            return dataclasses.replace(job.progress)

    def update(self, project: str, **fields):
        """Update progress fields of the project's current job."""
        with self._lock:
            job = self._jobs.get(project)
            if job is None:
                job = _Job(progress=IndexingProgress(project=project), cancel_event=threading.Event())
                self._jobs[project] = job
            job.progress = dataclasses.replace(job.progress, **fields)

    def is_running(self, project: str) -> bool:
        """Check if a job is running for the project."""
        return self.get_progress(project).state == JobState.RUNNING

    def start_or_status(self, project: str, runner: Runner) -> StartResult:
        """
        Start ``runner`` in the background unless a job is already running.

        Returns:
            StartResult with status "started" or "already_running"
        """
        with self._lock:
            current = self._jobs.get(project)
            if current is not None and current.progress.state == JobState.RUNNING:
                return StartResult(
                    status="already_running",
                    state=JobState.RUNNING,
                    progress=dataclasses.replace(current.progress),
                )

            job = _Job(
                progress=IndexingProgress(
                    project=project,
                    state=JobState.RUNNING,
                    started_at=time.time(),
                ),
                cancel_event=threading.Event(),
            )
            job.thread = threading.Thread(
                target=self._run,
                args=(project, job, runner),
                name=f"projectrag-index-{project}",
                daemon=True,
            )
            self._jobs[project] = job
            progress = dataclasses.replace(job.progress)

        job.thread.start()
        logger.info(f"Indexing started in background for '{project}'")
        return StartResult(status="started", state=JobState.RUNNING, progress=progress)

    def _run(self, project: str, job: _Job, runner: Runner):
        final = {}
        try:
            runner(job.cancel_event)
        except IndexingCancelled:
            final["state"] = JobState.CANCELLED
        except Exception as e:
            logger.exception(f"Indexing job failed for '{project}'")
            final.update(state=JobState.FAILED, last_error=str(e))
        else:
            cancelled = job.cancel_event.is_set()
            final["state"] = JobState.CANCELLED if cancelled else JobState.COMPLETE
        self.update(project, completed_at=time.time(), current_item=None, **final)

    def cancel(self, project: str) -> bool:
        """
        Ask the project's running job to stop.

        Returns:
            True if a running job was signalled
        """
        with self._lock:
            job = self._jobs.get(project)
            if job is None or job.progress.state != JobState.RUNNING:
                return False
            job.cancel_event.set()
        logger.info(f"Cancellation requested for '{project}'")
        return True

    def wait(self, project: str, timeout: float | None = None) -> bool:
        """
        Wait for the project's job to finish.

        Returns:
            True if no job is running when this returns
        """
        with self._lock:
            job = self._jobs.get(project)
            thread = job.thread if job else None
        if thread is not None:
            thread.join(timeout)
            return not thread.is_alive()
        return True


def start_directory_indexing(
    manager: IndexingJobManager,
    project: str,
    index: SemanticIndex,
    root: Path | str,
    force: bool = False,
    clean: bool = False,
    **scan_options,
) -> StartResult:
    """Index ``root`` into ``index`` as a background job named ``project``."""

    def runner(cancel_event: threading.Event):
        def on_progress(done: int, total: int, current: str | None):
            manager.update(project, items_done=done, items_total=total, current_item=current)

        result = index_directory(
            index,
            root,
            force=force,
            clean=clean,
            cancel_event=cancel_event,
            on_progress=on_progress,
            **scan_options,
        )
        if result.cancelled:
            raise IndexingCancelled(f"Indexing of '{project}' cancelled")

    return manager.start_or_status(project, runner)


indexing_jobs = IndexingJobManager()
