from __future__ import annotations
import json
import math
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from .models import Song
from .parsers import parse_song_filename

STORE_LOCK = threading.Lock()


def load_songs(data_file: Path) -> List[Song]:
    if not data_file.exists():
        return []
    try:
        raw = json.loads(data_file.read_text(encoding="utf-8"))
        return [Song.from_dict(item) for item in raw]
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.error(f"Could not load song store {data_file}: {e}")
        return []


def save_songs(data_file: Path, songs: List[Song]) -> None:
    data_file.parent.mkdir(parents=True, exist_ok=True)
    data_file.write_text(
        json.dumps([s.to_dict() for s in songs], indent=2), encoding="utf-8"
    )


def find_song(songs: List[Song], song_id: str) -> Optional[Song]:
    for s in songs:
        if s.id == song_id:
            return s
    return None


def list_mp3_files(songs_dir: Path) -> List[str]:
    return sorted(p.name for p in songs_dir.iterdir() if p.is_file() and p.suffix.lower() == ".mp3")


def scan_songs_dir(songs_dir: Path, data_file: Path) -> dict:
    """Register every MP3 in ``songs_dir`` that the store does not know yet.

    The caller checks that the directory exists and holds MP3 files. Scans are
    serialized so concurrent requests never load and save the store at once.
    """
    with STORE_LOCK:
        return _register_new_songs(songs_dir, data_file)


def _register_new_songs(songs_dir: Path, data_file: Path) -> dict:
    filenames = list_mp3_files(songs_dir)
    existing = load_songs(data_file)
    known = {s.filename for s in existing}

    results: List[dict] = []
    errors: List[dict] = []
    new_songs: List[Song] = []

    for filename in filenames:
        if filename in known:
            errors.append({"filename": filename, "error": "Song already registered"})
            continue
        try:
            size = (songs_dir / filename).stat().st_size
        except OSError as e:
            errors.append({"filename": filename, "error": str(e)})
            continue

        artist, title = parse_song_filename(filename)
        now = datetime.now(timezone.utc).isoformat()
        new_songs.append(
            Song(
                id=uuid.uuid4().hex,
                title=title,
                artist=artist,
                filename=filename,
                file_path=f"/songs/{filename}",
                file_size=size,
                upload_date=now,
                created_at=now,
                updated_at=now,
            )
        )
        results.append(
            {
                "filename": filename,
                "title": title,
                "artist": artist,
                "fileSize": size,
                "success": True,
            }
        )

    if new_songs:
        save_songs(data_file, existing + new_songs)
    logger.info(f"Scanned {songs_dir}: {len(new_songs)} new, {len(errors)} skipped")

    return {
        "message": "Scan complete",
        "totalFiles": len(filenames),
        "successful": len(results),
        "failed": len(errors),
        "results": results,
        "errors": errors,
    }


def query_songs(
    songs: List[Song],
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    artist: Optional[str] = None,
    sort: str = "uploadDate",
) -> Dict[str, object]:
    selected = [s for s in songs if s.is_active]

    if search:
        ql = search.lower()
        selected = [s for s in selected if ql in s.title.lower() or ql in s.artist.lower()]

    if artist:
        al = artist.lower()
        selected = [s for s in selected if al in s.artist.lower()]

    if sort == "title":
        selected.sort(key=lambda s: s.title.lower())
    elif sort == "artist":
        selected.sort(key=lambda s: s.artist.lower())
    else:
        selected.sort(key=lambda s: s.upload_date, reverse=True)

    total = len(selected)
    skip = (page - 1) * limit
    return {
        "songs": [s.to_dict() for s in selected[skip:skip + limit]],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }
