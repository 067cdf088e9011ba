"""
ListenBrainz client: POST /1/submit-listens with the user's token.

"now playing" updates go out as listen_type=playing_now (no timestamp);
submissions as listen_type=single with listened_at in unix seconds.
"""

from __future__ import annotations

import logging
from datetime import datetime

import requests

from scrobbler.errors import BackendNotificationError
from scrobbler.models import TrackInfo

log = logging.getLogger(__name__)

DEFAULT_URL = "https://api.listenbrainz.org"


class ListenBrainzError(BackendNotificationError): ...
class ListenBrainzAuthError(ListenBrainzError): ...
class ListenBrainzRateLimitError(ListenBrainzError): ...


class ListenBrainzClient:
    def __init__(self, base_url: str | None = None, timeout: int = 10):
        self.base = (base_url or DEFAULT_URL).rstrip("/")
        self.timeout = timeout

    def build_payload(self, media_ref: TrackInfo, submission: bool, timestamp: datetime) -> dict:
        metadata = {
            "artist_name": media_ref.artist,
            "track_name": media_ref.title,
        }
        if media_ref.album:
            metadata["release_name"] = media_ref.album
        if media_ref.duration:
            metadata["additional_info"] = {"duration": int(media_ref.duration)}

        listen = {"track_metadata": metadata}
        if submission:
            listen["listened_at"] = int(timestamp.timestamp())
        return {
            "listen_type": "single" if submission else "playing_now",
            "payload": [listen],
        }

    def notify(self, media_ref: TrackInfo, backend_account_username: str,
               cleartext_secret: str, submission: bool, timestamp: datetime) -> None:
        # ListenBrainz identifies the account by token alone
        if not media_ref.artist or not media_ref.title:
            log.debug("Track without artist/title; not sent to ListenBrainz")
            return

        body = self.build_payload(media_ref, submission, timestamp)
        headers = {"Authorization": f"Token {cleartext_secret}"}
        try:
            resp = requests.post(f"{self.base}/1/submit-listens", json=body,
                                 headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise ListenBrainzError(f"ListenBrainz unreachable: {e}") from e

        if resp.status_code == 401:
            raise ListenBrainzAuthError("ListenBrainz rejected the user token")
        if resp.status_code == 429:
            raise ListenBrainzRateLimitError("ListenBrainz rate limit exceeded")
        if resp.status_code >= 400:
            raise ListenBrainzError(f"ListenBrainz error {resp.status_code}: {resp.text[:200]}")
