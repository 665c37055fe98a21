from __future__ import annotations
import random
import uuid
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from loguru import logger
from pydantic import BaseModel, Field

from .config import Settings, configure_logging, get_settings, load_settings
from .library import find_song, list_mp3_files, load_songs, query_songs, scan_songs_dir
from .models import QueueState, Song
from .playback import (
    LoadPlaylist,
    Next,
    Pause,
    Play,
    PlaybackSession,
    PlaySong,
    Previous,
    SetVolume,
    ToggleRepeat,
    ToggleShuffle,
)
from .streaming import stream_song

configure_logging(load_settings().log_level)

app = FastAPI(title="Tunebox")

SESSIONS: Dict[str, PlaybackSession] = {}


def get_session_or_404(session_id: str) -> PlaybackSession:
    session = SESSIONS.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def get_songs_or_404(song_ids: List[str], settings: Settings) -> List[Song]:
    songs = load_songs(settings.data_file)
    by_id = {s.id: s for s in songs}
    resolved: List[Song] = []
    for sid in song_ids:
        song = by_id.get(sid)
        if song is None:
            raise HTTPException(status_code=404, detail=f"Song {sid} not found")
        resolved.append(song)
    return resolved


def _session_payload(session: PlaybackSession, state: Optional[QueueState] = None) -> dict:
    if state is None:
        state = session.state
    return {"session_id": session.id, "state": state.to_dict()}


@app.get("/api/songs")
def list_songs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    artist: Optional[str] = None,
    sort: str = "uploadDate",
    settings: Settings = Depends(get_settings),
):
    songs = load_songs(settings.data_file)
    return query_songs(songs, page=page, limit=limit, search=search, artist=artist, sort=sort)


@app.post("/api/songs/scan")
def scan_songs(settings: Settings = Depends(get_settings)):
    """Register MP3 files found in the songs directory."""
    songs_dir = settings.songs_dir
    if not songs_dir.is_dir():
        raise HTTPException(status_code=404, detail="Songs directory not found")
    if not list_mp3_files(songs_dir):
        raise HTTPException(status_code=404, detail="No MP3 files found in songs directory")
    return scan_songs_dir(songs_dir, settings.data_file)


@app.get("/api/songs/stream")
def stream(
    filename: Optional[str] = None,
    range_header: Optional[str] = Header(None, alias="Range"),
    settings: Settings = Depends(get_settings),
):
    return stream_song(filename, range_header, settings)


@app.get("/api/songs/{song_id}")
def get_song(song_id: str, settings: Settings = Depends(get_settings)):
    song = find_song(load_songs(settings.data_file), song_id)
    if song is None:
        raise HTTPException(status_code=404, detail="Song not found")
    return song.to_dict()


class CreateSessionRequest(BaseModel):
    song_ids: List[str] = []
    seed: Optional[int] = None


class LoadPlaylistRequest(BaseModel):
    song_ids: List[str]


class PlaySongRequest(BaseModel):
    song_id: str
    playlist_ids: Optional[List[str]] = None


class VolumeRequest(BaseModel):
    volume: float = Field(..., ge=0.0, le=1.0)


@app.post("/api/sessions")
def create_session(
    body: Optional[CreateSessionRequest] = None,
    settings: Settings = Depends(get_settings),
):
    body = body or CreateSessionRequest()
    rng = random.Random(body.seed) if body.seed is not None else None
    session = PlaybackSession(uuid.uuid4().hex, rng=rng)
    if body.song_ids:
        session.dispatch(LoadPlaylist(get_songs_or_404(body.song_ids, settings)))
    SESSIONS[session.id] = session
    logger.info(f"Created playback session {session.id} with {len(session.state.playlist)} songs")
    return _session_payload(session)


@app.get("/api/sessions/{session_id}")
def get_session(session_id: str):
    return _session_payload(get_session_or_404(session_id))


@app.delete("/api/sessions/{session_id}")
def delete_session(session_id: str):
    get_session_or_404(session_id)
    SESSIONS.pop(session_id, None)
    return {"deleted": session_id}


@app.post("/api/sessions/{session_id}/playlist")
def load_session_playlist(
    session_id: str,
    body: LoadPlaylistRequest,
    settings: Settings = Depends(get_settings),
):
    session = get_session_or_404(session_id)
    state = session.dispatch(LoadPlaylist(get_songs_or_404(body.song_ids, settings)))
    return _session_payload(session, state)


@app.post("/api/sessions/{session_id}/play_song")
def play_session_song(
    session_id: str,
    body: PlaySongRequest,
    settings: Settings = Depends(get_settings),
):
    session = get_session_or_404(session_id)
    song = get_songs_or_404([body.song_id], settings)[0]
    playlist = None
    if body.playlist_ids is not None:
        playlist = get_songs_or_404(body.playlist_ids, settings)
    state = session.dispatch(PlaySong(song, playlist))
    return _session_payload(session, state)


TRANSPORT_ACTIONS = {
    "play": Play,
    "pause": Pause,
    "next": Next,
    "previous": Previous,
    "toggle_repeat": ToggleRepeat,
    "toggle_shuffle": ToggleShuffle,
}


@app.post("/api/sessions/{session_id}/ended")
def track_ended(session_id: str):
    """The client's audio element finished the current track."""
    session = get_session_or_404(session_id)
    action = session.track_ended()
    return {"action": action, **_session_payload(session)}


@app.put("/api/sessions/{session_id}/volume")
def set_session_volume(session_id: str, body: VolumeRequest):
    session = get_session_or_404(session_id)
    state = session.dispatch(SetVolume(body.volume))
    return _session_payload(session, state)


@app.post("/api/sessions/{session_id}/{command}")
def transport(session_id: str, command: str):
    session = get_session_or_404(session_id)
    action_cls = TRANSPORT_ACTIONS.get(command)
    if action_cls is None:
        raise HTTPException(status_code=404, detail=f"Unknown command: {command}")
    state = session.dispatch(action_cls())
    return _session_payload(session, state)


def run() -> None:
    import uvicorn

    uvicorn.run("backend.app.main:app", host="0.0.0.0", port=8000)
