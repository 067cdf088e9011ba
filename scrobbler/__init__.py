"""Playback scrobble dispatcher: fans play events out to Last.fm and ListenBrainz."""

from scrobbler.dispatcher import ScrobbleDispatcher
from scrobbler.models import BackendKind, EncodingKind, PlaybackEvent, TrackInfo

__all__ = [
    "ScrobbleDispatcher",
    "BackendKind",
    "EncodingKind",
    "PlaybackEvent",
    "TrackInfo",
]
