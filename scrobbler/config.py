from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Config:
    log_level: str = "INFO"
    lastfm_api_key: str | None = None
    lastfm_api_secret: str | None = None
    listenbrainz_url: str | None = None
    http_timeout: int = 10
    workers: int = 4
    encryption_key: str | None = None
    data_path: str = "/data/scrobbler.json"


def from_env() -> Config:
    return Config(
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        lastfm_api_key=os.getenv("LASTFM_API_KEY"),
        lastfm_api_secret=os.getenv("LASTFM_API_SECRET"),
        listenbrainz_url=os.getenv("LISTENBRAINZ_URL"),
        http_timeout=max(1, int(os.getenv("HTTP_TIMEOUT", "10"))),
        workers=max(1, int(os.getenv("SCROBBLE_WORKERS", "4"))),
        encryption_key=os.getenv("SCROBBLER_ENCRYPTION_KEY"),
        data_path=os.getenv("SCROBBLER_DATA_PATH", "/data/scrobbler.json"),
    )
