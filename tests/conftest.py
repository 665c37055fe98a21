import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

from backend.app.config import Settings, get_settings
from backend.app.main import SESSIONS, app


@pytest.fixture
def settings(tmp_path):
    """Point the app at an empty songs directory and store under tmp_path."""
    songs_dir = tmp_path / "songs"
    songs_dir.mkdir()
    cfg = Settings(
        songs_dir=songs_dir,
        data_file=tmp_path / "data" / "songs.json",
        chunk_size=64,
    )
    app.dependency_overrides[get_settings] = lambda: cfg
    yield cfg
    app.dependency_overrides.pop(get_settings, None)
    SESSIONS.clear()
