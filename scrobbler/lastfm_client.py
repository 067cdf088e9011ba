import logging
from datetime import datetime

import pylast

from scrobbler.errors import BackendNotificationError, ConfigurationError
from scrobbler.models import TrackInfo

log = logging.getLogger(__name__)

# Last.fm ignores scrobbles of tracks shorter than this
MIN_SCROBBLE_DURATION = 30


# Custom error classes so callers can branch
class LastFMAuthError(BackendNotificationError): ...
class LastFMRateLimitError(BackendNotificationError): ...
class LastFMNetworkError(BackendNotificationError): ...
class LastFMUnknownError(BackendNotificationError): ...


class LastFMClient:
    """Thin wrapper over pylast for update-now-playing + scrobbling on behalf of any user."""

    def __init__(self, api_key: str | None, api_secret: str | None,
                 network_factory=pylast.LastFMNetwork):
        if not api_key or not api_secret:
            raise ConfigurationError("LASTFM_API_KEY and LASTFM_API_SECRET are required")
        self.api_key = api_key
        self.api_secret = api_secret
        self._network_factory = network_factory

    def _network(self, username: str, password: str):
        # A fresh network per call; pylast networks carry the session of one user
        try:
            return self._network_factory(
                api_key=self.api_key,
                api_secret=self.api_secret,
                username=username,
                password_hash=pylast.md5(password),
            )
        except pylast.WSError as e:
            raise _map_ws_error(e) from e
        except Exception as e:
            raise LastFMNetworkError(str(e)) from e

    def notify(self, media_ref: TrackInfo, backend_account_username: str,
               cleartext_secret: str, submission: bool, timestamp: datetime) -> None:
        if not media_ref.artist or not media_ref.title:
            log.debug("Track without artist/title; not sent to Last.fm")
            return
        if submission and media_ref.duration is not None and media_ref.duration < MIN_SCROBBLE_DURATION:
            log.debug("Track shorter than %ss; not scrobbled", MIN_SCROBBLE_DURATION)
            return

        network = self._network(backend_account_username, cleartext_secret)
        if submission:
            self.scrobble(network, artist=media_ref.artist, title=media_ref.title,
                          album=media_ref.album, duration=media_ref.duration,
                          timestamp=int(timestamp.timestamp()))
        else:
            self.update_now_playing(network, artist=media_ref.artist, title=media_ref.title,
                                    album=media_ref.album, duration=media_ref.duration)

    def update_now_playing(self, network, *, artist: str, title: str,
                           album: str | None, duration: int | None):
        """Push a Now Playing update."""
        try:
            network.update_now_playing(artist=artist, title=title, album=album, duration=duration)
        except pylast.WSError as e:
            raise _map_ws_error(e) from e
        except Exception as e:
            raise LastFMNetworkError(str(e)) from e

    def scrobble(self, network, *, artist: str, title: str, album: str | None,
                 duration: int | None, timestamp: int):
        """Submit a scrobble to Last.fm with a start timestamp (unix seconds)."""
        try:
            network.scrobble(artist=artist, title=title, album=album,
                             duration=duration, timestamp=timestamp)
        except pylast.WSError as e:
            raise _map_ws_error(e) from e
        except Exception as e:
            raise LastFMNetworkError(str(e)) from e


def _map_ws_error(e: "pylast.WSError") -> BackendNotificationError:
    code = str(getattr(e, "status", ""))
    msg = str(e)
    # Map common Last.fm error codes
    if code in ("4", "9", "14"):  # 4=Auth failed, 9=Invalid session, 14=Token expired
        return LastFMAuthError(msg)
    if code == "29":  # Rate limit exceeded
        return LastFMRateLimitError(msg)
    return LastFMUnknownError(f"Last.fm API error {code}: {msg}")
