"""Bounded parallel batch processor for ffmpeg jobs.

Each job is one external ffmpeg invocation, so worker threads spend their
time blocked on a child process. The pool size bounds how many encoders
run at once; failures are collected instead of aborting the batch.
"""

from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Any

import click
import psutil
from loguru import logger

from .models import BatchResult, JobResult, JobStatus

log = logger.bind(stage="orchestrator")


class BatchOrchestrator:
    """Runs a list of jobs through a worker with at most max_workers in flight.

    Attributes:
        max_workers: Upper bound on concurrently running jobs
        label: Noun used in status and summary lines ("renditions", "files")
        show_status: Whether to redraw the live status line
    """

    def __init__(
        self, max_workers: int, label: str = "jobs", show_status: bool = True
    ) -> None:
        self.max_workers = max(1, max_workers)
        self.label = label
        self.show_status = show_status

    def run_batch(
        self, jobs: Sequence[Any], worker: Callable[[Any], JobResult]
    ) -> BatchResult:
        """Run every job through worker and collect the outcomes.

        Jobs must expose a ``name`` attribute used for reporting.

        Args:
            jobs: Job descriptions, submitted in order
            worker: Callable running one job and returning its JobResult

        Returns:
            BatchResult with completed, failed, and skipped counts
        """
        if not jobs:
            log.warning(f"No {self.label} to process")
            return BatchResult()

        log.info(
            f"Starting batch: {len(jobs)} {self.label}, "
            f"max_workers={self.max_workers}"
        )

        queued = list(jobs)
        active: dict[Future, Any] = {}
        result = BatchResult(total=len(jobs))

        # Prime the CPU sampler so the first reading is meaningful
        psutil.cpu_percent(interval=None)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            while queued or active:
                while queued and len(active) < self.max_workers:
                    job = queued.pop(0)
                    future = executor.submit(self._run_single_safe, worker, job)
                    active[future] = job
                    log.debug(
                        f"Submitted {job.name} "
                        f"(active={len(active)}/{self.max_workers})"
                    )

                self._display_status(len(active), len(queued), result)

                done, _ = wait(active.keys(), timeout=5.0, return_when=FIRST_COMPLETED)
                for future in done:
                    active.pop(future)
                    self._record(result, future.result())

        self._display_summary(result)
        return result

    def _run_single_safe(self, worker: Callable[[Any], JobResult], job: Any) -> JobResult:
        """Run one job, turning any exception into a failed JobResult."""
        try:
            return worker(job)
        except Exception as e:
            log.error(f"Error running {job.name}: {e}")
            return JobResult(name=job.name, status=JobStatus.FAILED, message=str(e))

    def _record(self, result: BatchResult, job_result: JobResult) -> None:
        result.results.append(job_result)
        if job_result.status == JobStatus.COMPLETED:
            result.completed += 1
            log.debug(f"Completed: {job_result.name}")
        elif job_result.status == JobStatus.SKIPPED:
            result.skipped += 1
            log.debug(f"Skipped: {job_result.name} {job_result.message}".rstrip())
        else:
            result.failed += 1
            result.failures.append(job_result.name)
            log.error(f"Failed: {job_result.name} {job_result.message}".rstrip())

    def _display_status(self, active: int, queued: int, result: BatchResult) -> None:
        """Redraw the single-line progress display."""
        if not self.show_status:
            return
        cpu_load = psutil.cpu_percent(interval=None)
        status = (
            f"  [CPU: {cpu_load:.0f}%] "
            f"active={active} queued={queued} "
            f"done={result.completed} failed={result.failed} "
            f"skipped={result.skipped}"
        )
        click.echo(f"\r{status}", nl=False, err=True)

    def _display_summary(self, result: BatchResult) -> None:
        """Display final batch summary."""
        if self.show_status:
            click.echo("", err=True)  # Clear status line
        click.echo(
            f"Batch complete: {result.completed}/{result.total} {self.label} "
            f"succeeded, {result.failed} failed, {result.skipped} skipped"
        )

        if result.failures:
            click.echo(f"\nFailed {self.label}:")
            for name in result.failures:
                click.echo(f"  - {name}")
