"""Shared fakes for scrobbler tests."""

import threading

import pytest

from scrobbler.models import BackendKind, EncodingKind, StoredCredential
from scrobbler.stores import InMemoryStore


class RecordingClient:
    """Backend client that records every notify() call."""

    def __init__(self, fail_with: Exception | None = None):
        self.calls = []
        self.fail_with = fail_with
        self._lock = threading.Lock()

    def notify(self, media_ref, backend_account_username, cleartext_secret, submission, timestamp):
        with self._lock:
            self.calls.append({
                "media_ref": media_ref,
                "account": backend_account_username,
                "secret": cleartext_secret,
                "submission": submission,
                "timestamp": timestamp,
            })
        if self.fail_with is not None:
            raise self.fail_with


def credential(username, backend, secret, encoding=EncodingKind.NOOP, account=None):
    return StoredCredential(
        backend_kind=backend,
        encoding_kind=encoding,
        username=username,
        backend_account_username=account or f"{username}_{backend.value}",
        raw_secret=secret,
    )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def lastfm_client():
    return RecordingClient()


@pytest.fixture
def listenbrainz_client():
    return RecordingClient()


@pytest.fixture
def clients(lastfm_client, listenbrainz_client):
    return {BackendKind.LASTFM: lastfm_client, BackendKind.LISTENBRAINZ: listenbrainz_client}
