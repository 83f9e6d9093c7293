"""Snapshot comparison: turns two inventories into upload/delete jobs."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Union

from ..utils import path_depth
from .scanner import InventoryEntry, InventorySnapshot

logger = logging.getLogger(__name__)


class JobKind(str, Enum):
    """Kinds of remote actions."""

    UPLOAD = "upload"
    """Store a local file at its remote destination"""

    DELETE = "delete"
    """Remove a remote file or directory"""


@dataclass(frozen=True)
class UploadJob:
    """Upload ``source`` to ``destination``."""

    source: str
    destination: str

    @property
    def kind(self) -> JobKind:
        return JobKind.UPLOAD

    @classmethod
    def for_entry(cls, entry: InventoryEntry) -> "UploadJob":
        return cls(source=entry.source, destination=entry.destination)


@dataclass(frozen=True)
class DeleteJob:
    """Delete whatever lives at ``destination``."""

    destination: str

    @property
    def kind(self) -> JobKind:
        return JobKind.DELETE


Job = Union[UploadJob, DeleteJob]


class SnapshotDiffer:
    """Computes the jobs needed to bring the remote side up to date."""

    def diff(
        self,
        previous: Optional[InventorySnapshot],
        current: InventorySnapshot,
        cutoff: Optional[float] = None,
        pending: Iterable[Job] = (),
    ) -> list[Job]:
        """Compare the current snapshot with the previous one.

        Args:
            previous: Snapshot of the previous cycle, or None on cold start
            current: Snapshot just walked
            cutoff: Entries present in both snapshots are re-uploaded when
                their mtime is at or after this timestamp
            pending: Jobs that failed last cycle and should be retried

        Returns:
            Uploads sorted by destination, then deletes deepest first
        """
        if previous is None:
            logger.debug("Cold start: uploading all %d entries", len(current))
            uploads = [UploadJob.for_entry(e) for e in current]
            return self._dedup(uploads, [], current)

        added = current - previous
        removed = previous - current

        uploads = [UploadJob.for_entry(e) for e in added]
        if cutoff is not None:
            uploads.extend(
                UploadJob.for_entry(e)
                for e in current & previous
                if e.mtime >= cutoff
            )
        deletes = [DeleteJob(e.destination) for e in removed]

        for job in pending:
            if isinstance(job, UploadJob):
                if InventoryEntry(job.source, job.destination) in current:
                    uploads.append(job)
            else:
                deletes.append(job)

        logger.debug(
            "Diff: %d added, %d removed, %d staged uploads, %d staged deletes",
            len(added),
            len(removed),
            len(uploads) - len(added),
            len(deletes) - len(removed),
        )
        return self._dedup(uploads, deletes, current)

    def _dedup(
        self,
        uploads: list[UploadJob],
        deletes: list[DeleteJob],
        current: InventorySnapshot,
    ) -> list[Job]:
        """Collapse jobs to one per (kind, destination).

        A destination that is uploaded, or still produced by any current
        entry, is never deleted in the same cycle.
        """
        by_destination: dict[str, UploadJob] = {}
        for job in sorted(uploads, key=lambda j: (j.destination, j.source)):
            kept = by_destination.setdefault(job.destination, job)
            if kept.source != job.source:
                logger.warning(
                    "Both %s and %s map to %s; uploading %s",
                    kept.source,
                    job.source,
                    job.destination,
                    kept.source,
                )

        live = {e.destination for e in current}
        delete_paths = {
            job.destination for job in deletes if job.destination not in live
        }

        jobs: list[Job] = list(by_destination.values())
        jobs.extend(
            DeleteJob(path)
            for path in sorted(delete_paths, key=lambda p: (-path_depth(p), p))
        )
        return jobs


def diff_snapshots(
    previous: Optional[InventorySnapshot],
    current: InventorySnapshot,
    cutoff: Optional[float] = None,
    pending: Iterable[Job] = (),
) -> list[Job]:
    """Shortcut for :meth:`SnapshotDiffer.diff`."""
    return SnapshotDiffer().diff(previous, current, cutoff, pending)
