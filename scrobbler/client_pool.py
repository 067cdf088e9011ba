"""
One lazily built client per backend, shared by every dispatch call.

Published clients are read without locking. Construction takes a lock that
belongs to that backend only, so building the Last.fm client never holds up a
ListenBrainz lookup. A failed construction is not remembered: the next lookup
tries again, so a transient startup problem does not disable a backend for the
life of the process. Only the first failure in a row is logged at ERROR.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Mapping

from scrobbler.errors import ConfigurationError
from scrobbler.models import BackendClient, BackendKind

log = logging.getLogger(__name__)

ClientFactory = Callable[[], BackendClient]


class BackendClientPool:
    def __init__(self, factories: Mapping[BackendKind, ClientFactory]):
        self._factories = dict(factories)
        self._clients: dict[BackendKind, BackendClient] = {}
        # Fixed up front so the lock map itself never needs guarding
        self._locks = {kind: threading.Lock() for kind in self._factories}
        self._failing: set[BackendKind] = set()

    def get_or_create(self, backend_kind: BackendKind) -> BackendClient:
        client = self._clients.get(backend_kind)
        if client is not None:
            return client

        lock = self._locks.get(backend_kind)
        if lock is None:
            error = ConfigurationError(f"No client factory registered for backend {backend_kind.value}")
            self._report(backend_kind, error)
            raise error

        with lock:
            client = self._clients.get(backend_kind)
            if client is not None:
                return client
            try:
                client = self._factories[backend_kind]()
            except ConfigurationError as e:
                self._report(backend_kind, e)
                raise
            except Exception as e:
                error = ConfigurationError(f"{backend_kind.value} client construction failed: {e}")
                self._report(backend_kind, error)
                raise error from e
            self._clients[backend_kind] = client
            self._failing.discard(backend_kind)
            log.info("Created %s client", backend_kind.value)
            return client

    def _report(self, backend_kind: BackendKind, error: ConfigurationError) -> None:
        if backend_kind in self._failing:
            log.debug("%s client still unavailable: %s", backend_kind.value, error)
            return
        self._failing.add(backend_kind)
        log.error("Could not create %s client; will retry on next use: %s", backend_kind.value, error)

    def created(self) -> dict[BackendKind, BackendClient]:
        """Snapshot of the clients built so far."""
        return dict(self._clients)
