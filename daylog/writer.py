"""Append-only writer that routes formatted lines to per-day partitions."""

import logging
import os
import threading
from collections import defaultdict
from datetime import datetime

from daylog.errors import ValidationError
from daylog.formatter import (
    DEFAULT_COMPONENT,
    DEFAULT_PLATFORM,
    format_line,
    format_timestamp,
    normalize_level,
)
from daylog.models import BatchResult, WriteReceipt
from daylog.partitions import partition_filename, partition_id, partition_path, resolve
from daylog.validator import LogEntryValidator

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 1000
AUDIT_PLATFORM = "NodeLogger"


class PartitionWriter:
    """Writes log lines into ``log-YYYY-MM-DD.txt`` files under ``root``.

    Appends that target the same partition are serialized by a lock per
    partition so that concurrent requests never interleave partial lines.
    Different partitions are written independently.
    """

    def __init__(self, root, time_func=None, max_batch_size: int = MAX_BATCH_SIZE,
                 validator: LogEntryValidator | None = None):
        self._root = root
        self._time_func = time_func or datetime.now
        self._max_batch_size = max_batch_size
        self._validator = validator or LogEntryValidator()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        os.makedirs(root, exist_ok=True)

    @property
    def root(self):
        return self._root

    def now(self) -> datetime:
        return self._time_func()

    def _lock_for(self, pid: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(pid)
            if lock is None:
                lock = self._locks[pid] = threading.Lock()
            return lock

    def _append(self, pid: str, content: str) -> None:
        # encode first so an unencodable line never leaves an empty partition
        data = content.encode("utf-8", errors="replace")
        path = partition_path(self._root, pid)
        with self._lock_for(pid):
            with open(path, "ab") as f:
                f.write(data)

    def append_one(self, entry) -> WriteReceipt:
        """Validate, format and append a single entry.

        Raises ValidationError for bad input (nothing is written) and lets
        OSError from the filesystem propagate.
        """
        self._validator.validate(entry)
        now = self.now()
        pid = resolve(entry.get("date"), now)
        level = normalize_level(entry.get("level"))
        component = entry.get("component") or DEFAULT_COMPONENT
        platform = entry.get("platform") or DEFAULT_PLATFORM

        line = format_line(entry["message"], level, component, platform, now)
        self._append(pid, line)
        return WriteReceipt(
            filename=partition_filename(pid),
            timestamp=format_timestamp(now),
            level=level,
            component=component,
            platform=platform,
        )

    def append_batch(self, entries) -> BatchResult:
        """Append many entries with one file append per partition.

        The batch as a whole is rejected before any write when ``entries``
        is not a list, is empty, or exceeds the batch limit. Otherwise bad
        entries and failed partition writes are reported per entry.
        """
        if not isinstance(entries, list):
            raise ValidationError("Logs must be an array")
        if not entries:
            raise ValidationError("Logs array cannot be empty")
        if len(entries) > self._max_batch_size:
            raise ValidationError(f"Maximum {self._max_batch_size} logs per batch allowed")

        now = self.now()
        result = BatchResult(total=len(entries))
        groups: dict[str, list[tuple[int, str]]] = defaultdict(list)

        for index, entry in enumerate(entries):
            problems = self._validator.errors(entry)
            if not problems:
                try:
                    pid = resolve(entry.get("date"), now)
                except ValidationError as e:
                    problems = [e.error]
            if problems:
                result.errors.append({"index": index, "error": problems[0], "log": entry})
                continue

            line = format_line(
                entry["message"],
                entry.get("level"),
                entry.get("component"),
                entry.get("platform"),
                now,
            )
            groups[pid].append((index, line))

        for pid, lines in groups.items():
            try:
                self._append(pid, "".join(line for _, line in lines))
            except (OSError, UnicodeError) as e:
                logger.error("Batch write to %s failed: %s", partition_filename(pid), e)
                for index, _ in lines:
                    result.errors.append({
                        "index": index,
                        "error": f"Failed to write to file: {e}",
                        "date": pid,
                    })
                continue
            result.files_written.append(partition_filename(pid))

        result.failed = len(result.errors)
        result.successful = result.total - result.failed
        result.timestamp = format_timestamp(self.now())
        if result.failed:
            logger.warning("Batch partially failed: %d/%d entries written",
                           result.successful, result.total)
        return result

    def append_audit(self, message: str, level: str = "INFO", component: str = "Application",
                     now: datetime | None = None) -> str:
        """Append an internal audit line to today's partition. Returns the filename."""
        now = now or self.now()
        pid = partition_id(now.date())
        self._append(pid, format_line(message, level, component, AUDIT_PLATFORM, now))
        return partition_filename(pid)
