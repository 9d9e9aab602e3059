"""Line producers for the append-only JSONL sources."""

import os
from collections.abc import Iterator
from pathlib import Path

CHUNK_SIZE = 64 * 1024


def iter_lines(path: Path) -> Iterator[str]:
    """Yield the lines of ``path`` front to back without loading it whole."""
    with path.open(encoding="utf-8", errors="replace") as fh:
        for line in fh:
            yield line.rstrip("\r\n")


def iter_lines_reversed(path: Path, chunk_size: int = CHUNK_SIZE) -> Iterator[str]:
    """Yield the lines of ``path`` last to first, reading it backwards in chunks.

    Stopping iteration early leaves the older part of the file unread.
    """
    with path.open("rb") as fh:
        fh.seek(0, os.SEEK_END)
        pos = fh.tell()
        remainder = b""
        while pos > 0:
            step = min(chunk_size, pos)
            pos -= step
            fh.seek(pos)
            parts = (fh.read(step) + remainder).split(b"\n")
            # parts[0] may be the tail of a line that started in an earlier chunk
            remainder = parts[0]
            for raw in reversed(parts[1:]):
                yield raw.rstrip(b"\r").decode("utf-8", errors="replace")
        yield remainder.rstrip(b"\r").decode("utf-8", errors="replace")
