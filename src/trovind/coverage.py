"""Manifest coverage: which block ranges are durably done.

Functions
---------
- merge_intervals: merge overlapping/adjacent [start, end] integer ranges.
- contiguous_end: end of the merged interval covering a block.
- load_done_coverage: read manifest file(s) and collect 'done' ranges.

All intervals are inclusive on both ends: [start, end].
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def merge_intervals(intervals: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Merge overlapping/adjacent inclusive intervals.

    Parameters
    ----------
    intervals : list[tuple[int, int]]
        Unordered inclusive ranges.

    Returns
    -------
    list[tuple[int, int]]
        Minimal set of merged inclusive ranges.
    """
    if not intervals:
        return []
    intervals_sorted = sorted(intervals)
    out: list[list[int]] = [[intervals_sorted[0][0], intervals_sorted[0][1]]]
    for s, e in intervals_sorted[1:]:
        ms, me = out[-1]
        if s <= me + 1:
            out[-1][1] = max(me, e)
        else:
            out.append([s, e])
    return [(s, e) for s, e in out]


def contiguous_end(merged: list[tuple[int, int]], block: int) -> int | None:
    """Return the end of the merged interval containing `block`, or None."""
    for s, e in merged:
        if s <= block <= e:
            return e
    return None


def _read_done(path: Path) -> list[tuple[int, int]]:
    intervals: list[tuple[int, int]] = []
    with open(path) as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                rec = json.loads(line)
                if rec.get("status") == "done":
                    intervals.append((int(rec["from_block"]), int(rec["to_block"])))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                # A torn final line after a crash is expected; anything else is worth a look.
                logger.warning("ignoring malformed manifest line path=%s line=%d", path, lineno)
    return intervals


def load_done_coverage(manifest: Path) -> list[tuple[int, int]]:
    """Load all `[from_block, to_block]` ranges with status 'done'.

    Parameters
    ----------
    manifest : Path
        A JSONL manifest file, or a directory of `*.jsonl` manifests.

    Returns
    -------
    list[tuple[int, int]]
        Merged 'done' intervals.
    """
    if manifest.is_dir():
        paths = sorted(p for p in manifest.iterdir() if p.suffix == ".jsonl")
    elif manifest.exists():
        paths = [manifest]
    else:
        return []
    intervals: list[tuple[int, int]] = []
    for path in paths:
        intervals.extend(_read_done(path))
    return merge_intervals(intervals)
