"""Reconciliation loop: walk, diff and sync on a fixed cadence."""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..config import Settings
from ..exceptions import ConnectFailedError, DeleteFailedError, UploadFailedError
from ..output import OutputFormatter
from .comparator import DeleteJob, Job, SnapshotDiffer, UploadJob
from .operations import RemoteSyncClient
from .scanner import InventorySnapshot, InventoryWalker

logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    """Where the reconciliation loop currently is."""

    IDLE = "idle"
    WALKING = "walking"
    DIFFING = "diffing"
    SYNCING = "syncing"
    RESTING = "resting"
    STOPPED = "stopped"


@dataclass
class CycleReport:
    """Outcome of one reconciliation cycle."""

    jobs: list[Job] = field(default_factory=list)
    """Jobs computed for the cycle"""

    completed: list[Job] = field(default_factory=list)
    """Jobs that ran successfully"""

    failed: list[Job] = field(default_factory=list)
    """Jobs that failed or were not attempted; retried next cycle"""

    skipped: bool = False
    """True if syncing was skipped because no connection could be made"""

    @property
    def uploads(self) -> int:
        return sum(1 for job in self.completed if isinstance(job, UploadJob))

    @property
    def deletes(self) -> int:
        return sum(1 for job in self.completed if isinstance(job, DeleteJob))

    @property
    def stats(self) -> dict:
        return {
            "jobs": len(self.jobs),
            "uploads": self.uploads,
            "deletes": self.deletes,
            "failures": len(self.failed),
            "skipped": self.skipped,
        }


class ReconciliationLoop:
    """Keeps a remote endpoint in step with local files.

    Each cycle walks the local mappings, diffs the result against the
    previous walk and pushes the resulting jobs through the sync client.
    State (previous snapshot, cutoff, failed jobs) lives only in memory.

    Examples:
        >>> with RemoteSyncClient.from_settings(settings) as client:
        ...     loop = ReconciliationLoop(settings, client)
        ...     loop.watch()
    """

    def __init__(
        self,
        settings: Settings,
        client: RemoteSyncClient,
        walker: Optional[InventoryWalker] = None,
        differ: Optional[SnapshotDiffer] = None,
        output: Optional[OutputFormatter] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the loop.

        Args:
            settings: Deployment settings
            client: Remote sync client owning the connection
            walker: Inventory walker (built from settings if omitted)
            differ: Snapshot differ
            output: Output formatter for cycle summaries
            clock: Wall-clock function, injectable for tests
            sleep: Sleep function, injectable for tests
        """
        self.settings = settings
        self.client = client
        self.walker = walker or InventoryWalker(settings)
        self.differ = differ or SnapshotDiffer()
        self.output = output or OutputFormatter(quiet=True)
        self._clock = clock
        self._sleep = sleep

        self.state = LoopState.IDLE
        self.previous: Optional[InventorySnapshot] = None
        self.cutoff: Optional[float] = None
        self.pending: list[Job] = []
        self.failures: dict[Job, int] = {}
        self.cycles = 0

    def run_cycle(self) -> CycleReport:
        """Run one walk, diff and sync pass and rotate the rolling state.

        Returns:
            CycleReport for this cycle

        Raises:
            AuthFailedError: If the endpoint rejected the credentials
        """
        cycle_start = self._clock()
        self.cycles += 1

        self.state = LoopState.WALKING
        current = self.walker.walk()

        self.state = LoopState.DIFFING
        jobs = self.differ.diff(self.previous, current, self.cutoff, self.pending)
        report = CycleReport(jobs=jobs)

        if jobs:
            self.state = LoopState.SYNCING
            self._sync(jobs, report)

        # Failed jobs stay staged; the snapshot always advances
        self.pending = self._restage(report.failed)
        self.previous = current
        self.cutoff = cycle_start - self.settings.cutoff_slack
        self.state = LoopState.RESTING

        if jobs:
            logger.info(
                "Cycle %d: %d uploaded, %d deleted, %d failed",
                self.cycles,
                report.uploads,
                report.deletes,
                len(report.failed),
            )
        return report

    def _sync(self, jobs: list[Job], report: CycleReport) -> None:
        try:
            self.client.ensure_connected()
        except ConnectFailedError as e:
            logger.error("Skipping sync this cycle: %s", e)
            report.skipped = True
            report.failed.extend(jobs)
            return

        if self.output.quiet:
            self._execute_jobs(jobs, report)
            return

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            task = progress.add_task("Syncing files...", total=len(jobs))
            self._execute_jobs(jobs, report, lambda: progress.update(task, advance=1))

    def _execute_jobs(
        self,
        jobs: list[Job],
        report: CycleReport,
        advance: Optional[Callable[[], None]] = None,
    ) -> None:
        for index, job in enumerate(jobs):
            try:
                self.client.execute(job)
            except ConnectFailedError as e:
                # Connection is gone for good this cycle; stage the rest
                logger.error("Aborting cycle: %s", e)
                report.skipped = True
                report.failed.extend(jobs[index:])
                return
            except (UploadFailedError, DeleteFailedError) as e:
                logger.warning("%s", e)
                self.failures[job] = self.failures.get(job, 0) + 1
                report.failed.append(job)
            else:
                self.failures.pop(job, None)
                report.completed.append(job)
            if advance is not None:
                advance()

    def _restage(self, failed: list[Job]) -> list[Job]:
        """Keep failed jobs for the next cycle until they run out of attempts.

        Jobs that were never attempted (no connection) do not use up an
        attempt.
        """
        pending = []
        for job in failed:
            attempts = self.failures.get(job, 0)
            if attempts >= self.settings.job_attempts:
                logger.warning(
                    "Dropping %s of %s after %d failed attempts",
                    job.kind.value,
                    job.destination,
                    attempts,
                )
                self.output.warning(
                    f"Giving up on {job.kind.value} of {job.destination} "
                    f"after {attempts} attempts"
                )
            else:
                pending.append(job)

        self.failures = {
            job: count for job, count in self.failures.items() if job in pending
        }
        return pending

    def watch(self, max_cycles: Optional[int] = None) -> None:
        """Reconcile continuously until interrupted.

        Args:
            max_cycles: Stop after this many cycles (None runs forever)
        """
        self.output.info(
            f"Watching for changes, deploying to {self.client.endpoint.display_url}"
        )
        try:
            while max_cycles is None or self.cycles < max_cycles:
                self.run_cycle()
                if max_cycles is not None and self.cycles >= max_cycles:
                    break
                self._sleep(self.settings.poll_interval)
        finally:
            self.state = LoopState.STOPPED
            self.client.close()

    def run(self) -> CycleReport:
        """Upload the whole inventory once, without deleting anything.

        Returns:
            CycleReport of the single pass
        """
        self.state = LoopState.WALKING
        current = self.walker.walk()
        jobs: list[Job] = [
            UploadJob.for_entry(entry)
            for entry in sorted(current, key=lambda e: e.destination)
        ]
        report = CycleReport(jobs=jobs)

        try:
            if jobs:
                self.state = LoopState.SYNCING
                self._sync(jobs, report)
        finally:
            self.state = LoopState.STOPPED
            self.client.close()

        self._display_summary(report)
        return report

    def _display_summary(self, report: CycleReport) -> None:
        if report.skipped:
            self.output.error("Deployment aborted: could not connect")
        elif report.failed:
            self.output.warning(
                f"Deployment finished with {len(report.failed)} failure(s)"
            )
        else:
            self.output.success("Deployment complete!")

        if not report.jobs:
            self.output.info("Nothing to deploy")
            return
        self.output.print_summary(
            "Deployment summary",
            [
                ("Files", len(report.jobs)),
                ("Uploaded", report.uploads),
                ("Failed", len(report.failed)),
            ],
        )
