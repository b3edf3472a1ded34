"""Partition catalog: list, read, locate and delete day partitions."""

import logging
import os
from pathlib import Path

from daylog.errors import NotFoundError
from daylog.models import PartitionInfo
from daylog.partitions import (
    is_candidate,
    parse_date_strict,
    parse_partition_filename,
    partition_filename,
    partition_id,
    partition_path,
)

logger = logging.getLogger(__name__)


class PartitionCatalog:
    """Directory-backed view of the partitions. Nothing is cached."""

    def __init__(self, root, writer=None):
        self._root = root
        self._writer = writer

    @property
    def root(self):
        return self._root

    def candidate_files(self) -> list[str]:
        """Every ``log-*.txt`` name in the directory, conforming or not."""
        return sorted(name for name in os.listdir(self._root) if is_candidate(name))

    def list_partitions(self) -> list[PartitionInfo]:
        """Conforming partitions, newest date first."""
        partitions = []
        for name in self.candidate_files():
            day = parse_partition_filename(name)
            if day is None:
                continue
            pid = partition_id(day)
            partitions.append(PartitionInfo(filename=name, date=pid, path=f"/api/log/{pid}"))
        partitions.sort(key=lambda p: p.date, reverse=True)
        return partitions

    def partition_path(self, date_id: str) -> Path:
        return partition_path(self._root, date_id)

    def partition_file(self, date_id: str) -> Path:
        """Path of an existing partition; strict date validation first."""
        parse_date_strict(date_id)
        path = partition_path(self._root, date_id)
        if not path.is_file():
            raise NotFoundError(f"Log file not found for date {date_id}")
        return path

    def read_partition(self, date_id: str) -> list[str]:
        """Non-blank lines of a partition in stored order."""
        path = self.partition_file(date_id)
        with open(path, "r", encoding="utf-8", errors="replace", newline="") as f:
            content = f.read()
        # only "\n" separates entries; other separators belong to a message
        return [line for line in content.split("\n") if line.strip()]

    def delete_partition(self, date_id: str, today: str | None = None) -> str:
        """Remove a partition and audit the deletion unless it was today's.

        The audit line is best-effort: once the file is gone, a failure to
        record it is logged and does not fail the deletion.
        """
        path = self.partition_file(date_id)
        filename = partition_filename(date_id)
        try:
            os.remove(path)
        except FileNotFoundError:
            raise NotFoundError(f"Log file not found for date {date_id}") from None
        logger.info("Log file deleted: %s for date %s", filename, date_id)

        if self._writer is None:
            return filename
        if today is None:
            today = partition_id(self._writer.now().date())
        if date_id != today:
            try:
                self._writer.append_audit(
                    f"Log file deleted: {filename} ({date_id})",
                    level="INFO",
                    component="LogDelete",
                )
            except Exception:
                logger.exception("Failed to log delete action for %s", filename)
        return filename
