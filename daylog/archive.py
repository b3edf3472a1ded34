"""Streams every partition plus a JSON manifest as a single ZIP archive."""

import io
import json
import logging
import zipfile
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator

from daylog.errors import NotFoundError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "logs-summary.json"
READ_CHUNK_SIZE = 64 * 1024


class _ChunkBuffer(io.RawIOBase):
    """Unseekable sink that hands back whatever zipfile has written so far."""

    def __init__(self):
        super().__init__()
        self._chunks: list[bytes] = []

    def writable(self):
        return True

    def write(self, b):
        self._chunks.append(bytes(b))
        return len(b)

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


@dataclass
class ArchiveStream:
    filename: str
    chunks: Iterator[bytes]

    def __iter__(self):
        return self.chunks


class ArchiveExporter:
    """Builds ``all-logs_<timestamp>.zip`` incrementally from the catalog."""

    def __init__(self, catalog, time_func=None, compresslevel: int = 9):
        self._catalog = catalog
        self._time_func = time_func or datetime.now
        self._compresslevel = compresslevel

    def build_manifest(self, partitions, now: datetime) -> dict:
        files = sorted(
            ({"filename": p.filename, "date": p.date} for p in partitions),
            key=lambda f: f["date"],
        )
        return {
            "generated_at": now.strftime("%Y-%m-%d %H:%M:%S"),
            "total_files": len(files),
            "files": files,
        }

    def export_all(self) -> ArchiveStream:
        """Return the archive stream; raises NotFoundError before streaming if empty."""
        partitions = self._catalog.list_partitions()
        if not partitions:
            raise NotFoundError("No log files available to download")

        now = self._time_func()
        filename = f"all-logs_{now.strftime('%Y-%m-%d_%H-%M-%S')}.zip"
        return ArchiveStream(filename=filename, chunks=self._stream(partitions, now))

    def _stream(self, partitions, now: datetime) -> Iterator[bytes]:
        # Errors propagate out of the iterator so the transport aborts the
        # response instead of finishing a truncated archive.
        sink = _ChunkBuffer()
        try:
            zf = zipfile.ZipFile(sink, "w", compression=zipfile.ZIP_DEFLATED,
                                 compresslevel=self._compresslevel)
            archived = []
            for partition in sorted(partitions, key=lambda p: p.date):
                path = self._catalog.partition_path(partition.date)
                try:
                    src = open(path, "rb")
                except FileNotFoundError:
                    logger.warning("Partition %s vanished before archiving, skipping",
                                   partition.filename)
                    continue
                with src, zf.open(partition.filename, "w") as dest:
                    while True:
                        block = src.read(READ_CHUNK_SIZE)
                        if not block:
                            break
                        dest.write(block)
                        data = sink.drain()
                        if data:
                            yield data
                archived.append(partition)
                data = sink.drain()
                if data:
                    yield data

            manifest = self.build_manifest(archived, now)
            zf.writestr(MANIFEST_NAME, json.dumps(manifest, indent=2))
            zf.close()
            yield sink.drain()
        except Exception:
            logger.exception("Archive error while streaming all logs")
            raise
        logger.info("Streamed archive with %d partition(s)", len(archived))
