"""
Settings and credential stores.

- InMemoryStore: both collaborator interfaces over plain dicts.
- JsonFileStore: the same, loaded once from a JSON document:

    {
      "users": {"alice": {"lastfm": true, "listenbrainz": false}},
      "credentials": [
        {"username": "alice", "backend": "lastfm", "encoding": "legacyhex",
         "account": "alice_fm", "secret": "enc:..."}
      ]
    }
"""

from __future__ import annotations

import json
import logging
import os
import threading
from typing import Any, Dict, Mapping, Tuple

from scrobbler.errors import ConfigurationError
from scrobbler.models import BackendKind, EncodingKind, StoredCredential

log = logging.getLogger(__name__)


class InMemoryStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._flags: Dict[str, Dict[BackendKind, bool]] = {}
        self._creds: Dict[Tuple[str, BackendKind], StoredCredential] = {}

    # -------- writes --------
    def set_enabled(self, username: str, backend_kind: BackendKind, enabled: bool = True) -> None:
        with self._lock:
            self._flags.setdefault(username, {})[backend_kind] = enabled

    def put_credential(self, cred: StoredCredential) -> None:
        with self._lock:
            self._creds[(cred.username, cred.backend_kind)] = cred

    # -------- collaborator API --------
    def get_enabled_backend_flags(self, username: str) -> Mapping[BackendKind, bool] | None:
        with self._lock:
            flags = self._flags.get(username)
            return dict(flags) if flags is not None else None

    def get_stored_credential(self, username: str,
                              backend_kind: BackendKind) -> StoredCredential | None:
        with self._lock:
            return self._creds.get((username, backend_kind))


class JsonFileStore(InMemoryStore):
    def __init__(self, path: str):
        super().__init__()
        self.path = path
        self._load()

    def _load(self) -> None:
        if not os.path.isfile(self.path):
            log.warning("No scrobbler data at %s; every user has all backends disabled", self.path)
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read scrobbler data {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Scrobbler data {self.path} must be a JSON object")

        users = data.get("users") or {}
        if not isinstance(users, dict):
            raise ConfigurationError(f"\"users\" in {self.path} must be an object")
        for username, flags in users.items():
            flags = flags or {}
            if not isinstance(flags, dict):
                raise ConfigurationError(f"Settings of user {username} in {self.path} must be an object")
            for name, enabled in flags.items():
                kind = _backend_kind(name)
                if kind is None:
                    log.warning("Ignoring unknown backend %r in settings of user %s", name, username)
                    continue
                self.set_enabled(username, kind, bool(enabled))

        entries = data.get("credentials") or []
        if not isinstance(entries, list):
            raise ConfigurationError(f"\"credentials\" in {self.path} must be a list")
        for entry in entries:
            if not isinstance(entry, dict):
                raise ConfigurationError(f"Credential entries in {self.path} must be objects")
            cred = _credential(entry)
            if cred is None:
                log.warning("Ignoring malformed credential entry for user %s", entry.get("username"))
                continue
            self.put_credential(cred)

        log.info("Loaded scrobbler data from %s (%s users, %s credentials)",
                 self.path, len(self._flags), len(self._creds))


def _backend_kind(name: str) -> BackendKind | None:
    try:
        return BackendKind(str(name).lower())
    except ValueError:
        return None


def _credential(entry: Dict[str, Any]) -> StoredCredential | None:
    kind = _backend_kind(entry.get("backend", ""))
    username = entry.get("username")
    if kind is None or not username:
        return None
    encoding = entry.get("encoding", "")
    try:
        encoding = EncodingKind(encoding)
    except ValueError:
        pass  # kept raw; the decoder registry reports it per use
    return StoredCredential(
        backend_kind=kind,
        encoding_kind=encoding,
        username=username,
        backend_account_username=entry.get("account") or username,
        raw_secret=entry.get("secret"),
    )
