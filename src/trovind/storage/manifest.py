from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from trovind.core.models import ChunkRecord
from trovind.coverage import contiguous_end, load_done_coverage

logger = logging.getLogger(__name__)


class LiveManifest:
    """Append-only JSONL journal of batch outcomes; the tailing cursor checkpoint.

    Each line is a `ChunkRecord`. Only 'done' records count towards the
    cursor, and a 'done' record is written only after its batch has been
    fully persisted. Appends are fsynced before `append` returns.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.touch(exist_ok=True)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> str:
        return str(self._path)

    async def append(self, rec: ChunkRecord) -> None:
        async with self._lock:
            await asyncio.to_thread(self._append_synced, rec.to_json_line())

    def resume_from(self, start_block: int) -> int:
        """First block after the contiguous 'done' coverage that contains `start_block`."""
        end = contiguous_end(load_done_coverage(self._path), start_block)
        return start_block if end is None else end + 1

    def _append_synced(self, line: str) -> None:
        with self._path.open("a+b") as f:
            if f.seek(0, os.SEEK_END):
                f.seek(-1, os.SEEK_END)
                if f.read(1) != b"\n":
                    # Torn tail from an interrupted write; keep it off the new record.
                    logger.warning("terminating torn manifest line path=%s", self._path)
                    f.write(b"\n")
            f.write(line.encode())
            f.flush()
            os.fsync(f.fileno())
