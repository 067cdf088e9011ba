"""
Scrobble dispatcher.

register() works out which backends a user has enabled, decodes the user's
credential for each, and hands one notification per backend to a worker
thread. It returns as soon as the work is submitted; callers never see
whether a backend accepted the scrobble.

Notifications are fire-and-forget: there is no ordering between backends, nor
between events for the same user (a "now playing" may land after the
submission that follows it). Backends must tolerate late or duplicate plays.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from scrobbler.client_pool import BackendClientPool
from scrobbler.errors import BackendNotificationError, ConfigurationError
from scrobbler.models import BackendClient, BackendKind, PlaybackEvent, TrackInfo
from scrobbler.resolvers import CredentialResolver, EnablementResolver

log = logging.getLogger(__name__)


class ScrobbleDispatcher:
    def __init__(self, enablement: EnablementResolver, credentials: CredentialResolver,
                 clients: BackendClientPool, max_workers: int = 4,
                 executor: ThreadPoolExecutor | None = None):
        self.enablement = enablement
        self.credentials = credentials
        self.clients = clients
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="scrobble")

    def register(self, event: PlaybackEvent) -> None:
        """Queue notifications for every enabled backend. Returns without waiting for them."""
        if not event.username:
            raise ValueError("PlaybackEvent.username must be provided")
        if event.media_ref is None or event.is_video:
            return

        try:
            enabled = self.enablement.enabled_backends(event.username)
            if not enabled:
                return
            creds = self.credentials.resolve(event.username, enabled)
        except Exception:
            log.exception("Could not look up scrobble settings for user %s; event dropped", event.username)
            return

        timestamp = event.timestamp or datetime.now(timezone.utc)
        for kind, cred in creds.items():
            try:
                client = self.clients.get_or_create(kind)
            except ConfigurationError:
                # The pool has already logged it
                log.debug("Skipping %s for user %s: client unavailable", kind.value, event.username)
                continue
            try:
                self._executor.submit(
                    self._notify, kind, client, event.username, event.media_ref,
                    cred.backend_account_username, cred.cleartext_secret,
                    event.submission, timestamp,
                )
            except RuntimeError:
                # Executor already shut down
                log.warning("Dispatcher is shut down; %s event for user %s dropped",
                            kind.value, event.username)
                return

    @staticmethod
    def _notify(kind: BackendKind, client: BackendClient, username: str, media_ref: TrackInfo,
                account: str, secret: str, submission: bool, timestamp: datetime) -> None:
        what = "submission" if submission else "now playing"
        try:
            client.notify(media_ref, account, secret, submission, timestamp)
            log.info("Registered %s for user %s at %s: %s - %s",
                     what, username, kind.value, media_ref.artist, media_ref.title)
        except BackendNotificationError as e:
            log.warning("Failed to register %s for user %s at %s: %s", what, username, kind.value, e)
        except Exception:
            log.exception("Unexpected error registering %s for user %s at %s", what, username, kind.value)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
