"""
Tests for the range-serving stream endpoint
"""
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from fastapi.testclient import TestClient

from backend.app.main import app
from backend.app.streaming import iter_file_range

client = TestClient(app)

PAYLOAD = (bytes(range(256)) * 4)[:1000]


def _write_song(settings, name="Artist - Song.mp3", data=PAYLOAD):
    path = settings.songs_dir / name
    path.write_bytes(data)
    return path


def test_full_file_without_range(settings):
    _write_song(settings)
    resp = client.get("/api/songs/stream", params={"filename": "Artist - Song.mp3"})
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "audio/mpeg"
    assert resp.headers["content-length"] == "1000"
    assert resp.headers["accept-ranges"] == "bytes"
    assert resp.headers["cache-control"] == "public, max-age=31536000"
    assert "content-range" not in resp.headers
    assert resp.content == PAYLOAD


def test_range_request_returns_partial_content(settings):
    _write_song(settings)
    resp = client.get(
        "/api/songs/stream",
        params={"filename": "Artist - Song.mp3"},
        headers={"Range": "bytes=0-99"},
    )
    assert resp.status_code == 206
    assert resp.headers["content-range"] == "bytes 0-99/1000"
    assert resp.headers["content-length"] == "100"
    assert resp.content == PAYLOAD[:100]


def test_open_ended_range_spans_multiple_chunks(settings):
    _write_song(settings)
    resp = client.get(
        "/api/songs/stream",
        params={"filename": "Artist - Song.mp3"},
        headers={"Range": "bytes=300-"},
    )
    assert resp.status_code == 206
    assert resp.headers["content-range"] == "bytes 300-999/1000"
    assert resp.content == PAYLOAD[300:]


def test_range_end_past_eof_is_clamped(settings):
    _write_song(settings)
    resp = client.get(
        "/api/songs/stream",
        params={"filename": "Artist - Song.mp3"},
        headers={"Range": "bytes=990-2000"},
    )
    assert resp.status_code == 206
    assert resp.headers["content-range"] == "bytes 990-999/1000"
    assert resp.content == PAYLOAD[990:]


def test_unsatisfiable_range_returns_416(settings):
    _write_song(settings)
    resp = client.get(
        "/api/songs/stream",
        params={"filename": "Artist - Song.mp3"},
        headers={"Range": "bytes=1000-"},
    )
    assert resp.status_code == 416
    assert resp.headers["content-range"] == "bytes */1000"


def test_malformed_range_serves_whole_file(settings):
    _write_song(settings)
    resp = client.get(
        "/api/songs/stream",
        params={"filename": "Artist - Song.mp3"},
        headers={"Range": "bytes=oops"},
    )
    assert resp.status_code == 200
    assert resp.content == PAYLOAD


def test_extension_check_is_case_insensitive(settings):
    _write_song(settings, name="LOUD.MP3")
    resp = client.get("/api/songs/stream", params={"filename": "LOUD.MP3"})
    assert resp.status_code == 200


def test_missing_filename_is_400(settings):
    resp = client.get("/api/songs/stream")
    assert resp.status_code == 400


def test_non_mp3_is_400(settings):
    _write_song(settings, name="track.wav")
    resp = client.get("/api/songs/stream", params={"filename": "track.wav"})
    assert resp.status_code == 400


def test_missing_file_is_404(settings):
    resp = client.get("/api/songs/stream", params={"filename": "nope.mp3"})
    assert resp.status_code == 404


def test_path_traversal_is_rejected(settings):
    outside = settings.songs_dir.parent / "secret.mp3"
    outside.write_bytes(b"secret")
    resp = client.get("/api/songs/stream", params={"filename": "../secret.mp3"})
    assert resp.status_code == 400
    resp = client.get("/api/songs/stream", params={"filename": str(outside)})
    assert resp.status_code == 400


def test_non_get_is_405(settings):
    _write_song(settings)
    resp = client.post("/api/songs/stream", params={"filename": "Artist - Song.mp3"})
    assert resp.status_code == 405


def test_iter_file_range_closes_file_on_early_exit(settings):
    path = _write_song(settings)
    fh = open(path, "rb")
    gen = iter_file_range(fh, 10, 500, 50)
    assert next(gen) == PAYLOAD[10:60]
    gen.close()
    assert fh.closed


def test_iter_file_range_yields_exact_span_and_closes(settings):
    path = _write_song(settings)
    fh = open(path, "rb")
    data = b"".join(iter_file_range(fh, 123, 456, 100))
    assert data == PAYLOAD[123:123 + 456]
    assert fh.closed


def test_open_failure_is_500(settings, monkeypatch):
    _write_song(settings, name="a.mp3")
    real_open = open

    def denied_open(file, *args, **kwargs):
        if str(file).endswith("a.mp3"):
            raise PermissionError(13, "Permission denied", str(file))
        return real_open(file, *args, **kwargs)

    monkeypatch.setattr("builtins.open", denied_open)
    resp = client.get("/api/songs/stream", params={"filename": "a.mp3"})
    assert resp.status_code == 500


def test_stat_failure_is_500(settings, monkeypatch):
    from backend.app import streaming

    vanished = settings.songs_dir / "gone.mp3"
    monkeypatch.setattr(streaming, "resolve_song_path", lambda songs_dir, filename: vanished)
    resp = client.get("/api/songs/stream", params={"filename": "gone.mp3"})
    assert resp.status_code == 500
