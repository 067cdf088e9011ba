from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol


class BackendKind(str, Enum):
    LASTFM = "lastfm"
    LISTENBRAINZ = "listenbrainz"


class EncodingKind(str, Enum):
    """How a credential secret is encoded at rest."""
    NOOP = "noop"
    LEGACY_NOOP = "legacynoop"
    LEGACY_HEX = "legacyhex"
    AES_GCM = "encrypted-AES-GCM"


# -------------------------
# Playback
# -------------------------
@dataclass(frozen=True)
class TrackInfo:
    artist: str | None
    title: str | None
    album: str | None = None
    duration: int | None = None  # seconds


@dataclass(frozen=True)
class PlaybackEvent:
    media_ref: TrackInfo | None
    username: str
    submission: bool
    is_video: bool = False
    timestamp: datetime | None = None  # None => time of register()


# -------------------------
# Credentials
# -------------------------
@dataclass(frozen=True)
class StoredCredential:
    """A credential as persisted by the credential store. Read-only here."""
    backend_kind: BackendKind
    # Raw strings are kept when storage holds an encoding we do not know.
    encoding_kind: EncodingKind | str
    username: str
    backend_account_username: str
    raw_secret: str = field(repr=False)


@dataclass(frozen=True)
class DecodedCredential:
    """Stored credential plus its cleartext. Lives for one dispatch call only."""
    stored: StoredCredential
    cleartext_secret: str = field(repr=False)

    @property
    def backend_kind(self) -> BackendKind:
        return self.stored.backend_kind

    @property
    def backend_account_username(self) -> str:
        return self.stored.backend_account_username


class BackendClient(Protocol):
    def notify(self, media_ref: TrackInfo, backend_account_username: str,
               cleartext_secret: str, submission: bool, timestamp: datetime) -> None: ...


# -------------------------
# Sonos account link
# -------------------------
@dataclass(frozen=True)
class IdentityLink:
    username: str
    household_id: str
    link_code: str

    def __post_init__(self):
        for name in ("username", "household_id", "link_code"):
            if getattr(self, name) is None:
                raise ValueError(f"The {name} must be provided")
