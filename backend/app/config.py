from __future__ import annotations
import os
import sys
from functools import lru_cache
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field

BASE_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseModel):
    songs_dir: Path = BASE_DIR / "songs"
    data_file: Path = BASE_DIR / "data" / "songs.json"
    chunk_size: int = Field(64 * 1024, gt=0)
    cache_max_age: int = 31536000
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build settings from TUNEBOX_* environment variables."""
    defaults = Settings()
    return Settings(
        songs_dir=os.getenv("TUNEBOX_SONGS_DIR", str(defaults.songs_dir)),
        data_file=os.getenv("TUNEBOX_DATA_FILE", str(defaults.data_file)),
        chunk_size=os.getenv("TUNEBOX_CHUNK_SIZE", defaults.chunk_size),
        cache_max_age=os.getenv("TUNEBOX_CACHE_MAX_AGE", defaults.cache_max_age),
        log_level=os.getenv("TUNEBOX_LOG_LEVEL", defaults.log_level),
    )


@lru_cache
def get_settings() -> Settings:
    """FastAPI dependency for configuration."""
    return load_settings()


def configure_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
