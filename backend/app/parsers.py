from __future__ import annotations
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional, Tuple

UNKNOWN_ARTIST = "Unknown Artist"

_RANGE_RE = re.compile(r"^bytes=(\d*)-(\d*)$")


def parse_song_filename(filename: str) -> Tuple[str, str]:
    """Guess (artist, title) from names like "Artist - Title.mp3"."""
    stem = filename
    if stem.lower().endswith(".mp3"):
        stem = stem[:-4]
    stem = PurePosixPath(stem).name or stem

    for sep in (" - ", ", "):
        if sep in stem:
            artist, _, title = stem.partition(sep)
            artist, title = artist.strip(), title.strip()
            if artist and title:
                return artist, title
            break
    return UNKNOWN_ARTIST, stem.strip()


@dataclass(frozen=True)
class ByteRange:
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, total: int) -> str:
        return f"bytes {self.start}-{self.end}/{total}"


class RangeNotSatisfiable(Exception):
    def __init__(self, header: str, file_size: int):
        super().__init__(f"Range {header!r} not satisfiable for {file_size} bytes")
        self.header = header
        self.file_size = file_size


def parse_range_header(header: Optional[str], file_size: int) -> Optional[ByteRange]:
    """Resolve a single ``bytes=`` range against a file of ``file_size`` bytes.

    Returns None when the header is absent or cannot be understood (multiple
    ranges, other units, bad syntax), meaning the whole file should be sent.
    Raises RangeNotSatisfiable when the range is well-formed but lies outside
    the file or is inverted. An ``end`` past EOF is clamped.
    """
    if not header:
        return None
    m = _RANGE_RE.match(header.strip())
    if not m:
        return None
    first, last = m.groups()
    if not first and not last:
        return None

    if not first:
        suffix = int(last)
        if suffix == 0 or file_size == 0:
            raise RangeNotSatisfiable(header, file_size)
        return ByteRange(max(file_size - suffix, 0), file_size - 1)

    start = int(first)
    end = int(last) if last else file_size - 1
    if start >= file_size or start > end:
        raise RangeNotSatisfiable(header, file_size)
    return ByteRange(start, min(end, file_size - 1))
