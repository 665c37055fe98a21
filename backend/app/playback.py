"""Playback queue state machine.

Every transition is a pure function from a ``QueueState`` to a new
``QueueState``. ``PlaybackSession`` owns one state per listener session and
is the only place where transitions are applied.
"""
from __future__ import annotations
import random
import threading
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence

from loguru import logger

from .models import QueueState, RepeatMode, Song

REPEAT_CYCLE = (RepeatMode.NONE, RepeatMode.ONE, RepeatMode.ALL)


def _index_of(song: Optional[Song], ordering: Sequence[Song]) -> int:
    if song is None:
        return -1
    for i, s in enumerate(ordering):
        if s.id == song.id:
            return i
    return -1


def load_playlist(state: QueueState, songs: Sequence[Song]) -> QueueState:
    songs = tuple(songs)
    return replace(state, playlist=songs, shuffled_playlist=songs)


def set_current_song(state: QueueState, song: Song) -> QueueState:
    return replace(state, current_song=song)


def play_song(
    state: QueueState, song: Song, playlist: Optional[Sequence[Song]] = None
) -> QueueState:
    """Start ``song``, replacing the playlist with ``playlist`` or ``[song]``.

    A song missing from ``playlist`` leaves ``current_index`` at -1 while
    ``current_song`` is still set.
    """
    new_playlist = tuple(playlist) if playlist is not None else (song,)
    return replace(
        state,
        current_song=song,
        playlist=new_playlist,
        shuffled_playlist=new_playlist,
        current_index=_index_of(song, new_playlist),
        is_playing=True,
    )


def play(state: QueueState) -> QueueState:
    return replace(state, is_playing=True)


def pause(state: QueueState) -> QueueState:
    return replace(state, is_playing=False)


def next_song(state: QueueState) -> QueueState:
    """Advance within the active ordering.

    Repeat-one is not handled here; the playback layer decides whether a
    finished track restarts before calling this.
    """
    ordering = state.active_ordering
    if not ordering:
        return state

    idx = state.current_index + 1
    if idx >= len(ordering):
        if state.repeat_mode is RepeatMode.ALL:
            idx = 0
        else:
            return replace(state, is_playing=False)

    return replace(state, current_index=idx, current_song=ordering[idx], is_playing=True)


def previous_song(state: QueueState) -> QueueState:
    ordering = state.active_ordering
    if not ordering:
        return state

    idx = state.current_index - 1
    if idx < 0:
        if state.repeat_mode is RepeatMode.ALL:
            idx = len(ordering) - 1
        else:
            return state
    elif idx >= len(ordering):
        idx = len(ordering) - 1

    return replace(state, current_index=idx, current_song=ordering[idx], is_playing=True)


def set_volume(state: QueueState, volume: float) -> QueueState:
    return replace(state, volume=volume)


def toggle_repeat(state: QueueState) -> QueueState:
    pos = REPEAT_CYCLE.index(state.repeat_mode)
    return replace(state, repeat_mode=REPEAT_CYCLE[(pos + 1) % len(REPEAT_CYCLE)])


def toggle_shuffle(state: QueueState, rng: Optional[random.Random] = None) -> QueueState:
    """Flip shuffle mode and relocate the current song in the new ordering."""
    shuffled = not state.is_shuffled
    if shuffled:
        order = list(state.playlist)
        (rng or random).shuffle(order)
        shuffled_playlist = tuple(order)
        active = shuffled_playlist
    else:
        shuffled_playlist = state.playlist
        active = state.playlist

    return replace(
        state,
        is_shuffled=shuffled,
        shuffled_playlist=shuffled_playlist,
        current_index=_index_of(state.current_song, active),
    )


@dataclass(frozen=True)
class LoadPlaylist:
    songs: Sequence[Song]


@dataclass(frozen=True)
class SetCurrentSong:
    song: Song


@dataclass(frozen=True)
class PlaySong:
    song: Song
    playlist: Optional[Sequence[Song]] = None


@dataclass(frozen=True)
class Play:
    pass


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class Next:
    pass


@dataclass(frozen=True)
class Previous:
    pass


@dataclass(frozen=True)
class SetVolume:
    volume: float


@dataclass(frozen=True)
class ToggleRepeat:
    pass


@dataclass(frozen=True)
class ToggleShuffle:
    pass


def reduce(state: QueueState, action, rng: Optional[random.Random] = None) -> QueueState:
    if isinstance(action, LoadPlaylist):
        return load_playlist(state, action.songs)
    if isinstance(action, SetCurrentSong):
        return set_current_song(state, action.song)
    if isinstance(action, PlaySong):
        return play_song(state, action.song, action.playlist)
    if isinstance(action, Play):
        return play(state)
    if isinstance(action, Pause):
        return pause(state)
    if isinstance(action, Next):
        return next_song(state)
    if isinstance(action, Previous):
        return previous_song(state)
    if isinstance(action, SetVolume):
        return set_volume(state, action.volume)
    if isinstance(action, ToggleRepeat):
        return toggle_repeat(state)
    if isinstance(action, ToggleShuffle):
        return toggle_shuffle(state, rng)
    raise TypeError(f"Unknown playback action: {action!r}")


Listener = Callable[[QueueState, QueueState, object], None]


class PlaybackSession:
    """Owns the queue state of one listener and notifies subscribers of changes."""

    def __init__(self, session_id: str, rng: Optional[random.Random] = None):
        self.id = session_id
        self.state = QueueState()
        self._rng = rng
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action) -> QueueState:
        with self._lock:
            previous = self.state
            self.state = reduce(previous, action, self._rng)
            for listener in list(self._listeners):
                try:
                    listener(previous, self.state, action)
                except Exception:
                    logger.exception(f"Playback listener failed in session {self.id}")
            return self.state

    def track_ended(self) -> str:
        """React to the current track finishing.

        Returns "restart" when repeat-one is active (the client seeks back to
        zero and the queue is untouched), otherwise advances and returns
        "advance".
        """
        with self._lock:
            if self.state.repeat_mode is RepeatMode.ONE:
                return "restart"
            self.dispatch(Next())
            return "advance"
