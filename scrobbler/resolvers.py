from __future__ import annotations

import logging
from typing import Iterable, Mapping, Protocol

from scrobbler.decoders import DecodeError, DecoderRegistry
from scrobbler.models import BackendKind, DecodedCredential, StoredCredential

log = logging.getLogger(__name__)


class SettingsStore(Protocol):
    def get_enabled_backend_flags(self, username: str) -> Mapping[BackendKind, bool] | None: ...


class CredentialStore(Protocol):
    def get_stored_credential(self, username: str,
                              backend_kind: BackendKind) -> StoredCredential | None: ...


class EnablementResolver:
    """Which backends a user has opted into. No settings record means none."""

    def __init__(self, settings: SettingsStore):
        self.settings = settings

    def enabled_backends(self, username: str) -> frozenset[BackendKind]:
        flags = self.settings.get_enabled_backend_flags(username)
        if not flags:
            return frozenset()
        return frozenset(kind for kind, enabled in flags.items() if enabled)


class CredentialResolver:
    """
    Fetches and decodes a user's credential for each requested backend.

    A backend is present in the result only when a credential is stored for it
    and that credential decoded; anything else is dropped and the remaining
    backends are still resolved.
    """

    def __init__(self, store: CredentialStore, registry: DecoderRegistry):
        self.store = store
        self.registry = registry

    def resolve(self, username: str,
                backend_kinds: Iterable[BackendKind]) -> dict[BackendKind, DecodedCredential]:
        resolved: dict[BackendKind, DecodedCredential] = {}
        for kind in backend_kinds:
            stored = self.store.get_stored_credential(username, kind)
            if stored is None:
                log.debug("No %s credential stored for user %s", kind.value, username)
                continue

            secret = self.registry.decode_credential(stored)
            if isinstance(secret, DecodeError):
                continue  # already logged by the registry
            resolved[kind] = DecodedCredential(stored=stored, cleartext_secret=secret)
        return resolved
