from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class Song:
    id: str
    title: str
    artist: str
    filename: str
    file_path: str = ""
    file_size: int = 0
    duration: float = 0
    genre: str = "Unknown"
    album: str = "Unknown"
    upload_date: str = ""
    is_active: bool = True
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "filename": self.filename,
            "filePath": self.file_path,
            "fileSize": self.file_size,
            "duration": self.duration,
            "genre": self.genre,
            "album": self.album,
            "uploadDate": self.upload_date,
            "isActive": self.is_active,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Song":
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            artist=data.get("artist") or "",
            filename=data["filename"],
            file_path=data.get("filePath") or "",
            file_size=int(data.get("fileSize") or 0),
            duration=data.get("duration") or 0,
            genre=data.get("genre") or "Unknown",
            album=data.get("album") or "Unknown",
            upload_date=data.get("uploadDate") or "",
            is_active=bool(data.get("isActive", True)),
            created_at=data.get("createdAt") or "",
            updated_at=data.get("updatedAt") or "",
        )


class RepeatMode(str, Enum):
    NONE = "none"
    ONE = "one"
    ALL = "all"


@dataclass(frozen=True)
class QueueState:
    playlist: Tuple[Song, ...] = ()
    shuffled_playlist: Tuple[Song, ...] = ()
    current_index: int = -1
    current_song: Optional[Song] = None
    is_playing: bool = False
    volume: float = 0.7
    repeat_mode: RepeatMode = RepeatMode.NONE
    is_shuffled: bool = False

    @property
    def active_ordering(self) -> Tuple[Song, ...]:
        """Whichever ordering governs next/previous navigation."""
        return self.shuffled_playlist if self.is_shuffled else self.playlist

    def to_dict(self) -> dict:
        return {
            "playlist": [s.to_dict() for s in self.playlist],
            "shuffledPlaylist": [s.to_dict() for s in self.shuffled_playlist],
            "currentIndex": self.current_index,
            "currentSong": self.current_song.to_dict() if self.current_song else None,
            "isPlaying": self.is_playing,
            "volume": self.volume,
            "repeatMode": self.repeat_mode.value,
            "isShuffled": self.is_shuffled,
        }
