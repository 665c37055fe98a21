from __future__ import annotations
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from loguru import logger

from .config import Settings
from .parsers import RangeNotSatisfiable, parse_range_header

AUDIO_MEDIA_TYPE = "audio/mpeg"


def resolve_song_path(songs_dir: Path, filename: Optional[str]) -> Path:
    """Validate ``filename`` and return its path inside ``songs_dir``."""
    if not filename:
        raise HTTPException(status_code=400, detail="Filename is required")
    if not filename.lower().endswith(".mp3"):
        raise HTTPException(status_code=400, detail="Only MP3 files are allowed")

    root = songs_dir.resolve()
    try:
        path = (root / filename).resolve()
        path.relative_to(root)
    except (ValueError, OSError, RuntimeError):
        logger.warning(f"Blocked access outside songs directory: {filename!r}")
        raise HTTPException(status_code=400, detail="Invalid filename")

    if not path.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return path


def iter_file_range(fh: BinaryIO, start: int, length: int, chunk_size: int) -> Iterator[bytes]:
    """Yield exactly ``length`` bytes of the open file ``fh`` starting at ``start``.

    The file is closed when the body is exhausted, a read fails, or the
    generator is closed early (client disconnect).
    """
    try:
        fh.seek(start)
        remaining = length
        while remaining > 0:
            chunk = fh.read(min(chunk_size, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk
    finally:
        fh.close()


def stream_song(filename: Optional[str], range_header: Optional[str], settings: Settings) -> StreamingResponse:
    path = resolve_song_path(settings.songs_dir, filename)
    try:
        file_size = path.stat().st_size
    except OSError:
        logger.exception(f"Could not stat {path}")
        raise HTTPException(status_code=500, detail="Internal server error")

    headers = {
        "Accept-Ranges": "bytes",
        "Cache-Control": f"public, max-age={settings.cache_max_age}",
    }

    try:
        byte_range = parse_range_header(range_header, file_size)
    except RangeNotSatisfiable as e:
        logger.warning(str(e))
        raise HTTPException(
            status_code=416,
            detail="Requested range not satisfiable",
            headers={"Content-Range": f"bytes */{file_size}", **headers},
        )

    try:
        fh = open(path, "rb")
    except OSError:
        logger.exception(f"Could not open {path}")
        raise HTTPException(status_code=500, detail="Internal server error")

    if byte_range is None:
        logger.info(f"Streaming {path.name} ({file_size} bytes)")
        headers["Content-Length"] = str(file_size)
        return StreamingResponse(
            iter_file_range(fh, 0, file_size, settings.chunk_size),
            status_code=200,
            media_type=AUDIO_MEDIA_TYPE,
            headers=headers,
        )

    logger.info(f"Streaming {path.name} {byte_range.content_range(file_size)}")
    headers["Content-Range"] = byte_range.content_range(file_size)
    headers["Content-Length"] = str(byte_range.length)
    return StreamingResponse(
        iter_file_range(fh, byte_range.start, byte_range.length, settings.chunk_size),
        status_code=206,
        media_type=AUDIO_MEDIA_TYPE,
        headers=headers,
    )
