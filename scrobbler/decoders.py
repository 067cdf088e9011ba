"""
Credential decoder registry.

Maps each EncodingKind to a function turning the stored secret back into
cleartext. Decoders never raise on bad input: every failure comes back as a
DecodeError value so one corrupt credential cannot break a dispatch call.
"""

from __future__ import annotations

import binascii
import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable, Mapping

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from scrobbler.errors import ConfigurationError
from scrobbler.models import EncodingKind, StoredCredential

log = logging.getLogger(__name__)

HEX_PREFIX = "enc:"
AES_IV_BYTES = 16
PBKDF2_ITERATIONS = 1024


@dataclass(frozen=True)
class DecodeError:
    encoding_kind: EncodingKind | str
    reason: str


Decoder = Callable[[str], "str | DecodeError"]


# -------- decoders --------
def decode_noop(raw: str) -> str | DecodeError:
    return raw


def decode_legacy_noop(raw: str) -> str | DecodeError:
    return raw


def decode_legacy_hex(raw: str) -> str | DecodeError:
    encoded = raw[len(HEX_PREFIX):] if raw.startswith(HEX_PREFIX) else raw
    try:
        return bytes.fromhex(encoded).decode("utf-8")
    except ValueError:
        # UnicodeDecodeError is a ValueError too
        return DecodeError(EncodingKind.LEGACY_HEX, "not a hex encoded UTF-8 string")


def derive_key(password: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(algorithm=hashes.SHA1(), length=32, salt=salt, iterations=PBKDF2_ITERATIONS)
    return kdf.derive(password.encode("utf-8"))


def decode_aes_gcm(raw: str, encryption_key: str | None = None) -> str | DecodeError:
    """Decrypt "<salt hex>:<hex(iv || ciphertext || tag)>" with the configured key."""
    if not encryption_key:
        return DecodeError(EncodingKind.AES_GCM, "no encryption key configured")
    if not raw or ":" not in raw:
        return DecodeError(EncodingKind.AES_GCM, "expected '<salt>:<payload>'")

    salt_hex, _, payload_hex = raw.partition(":")
    try:
        salt = binascii.unhexlify(salt_hex)
        payload = binascii.unhexlify(payload_hex)
    except (binascii.Error, ValueError):
        return DecodeError(EncodingKind.AES_GCM, "salt or payload is not hex")
    if len(payload) <= AES_IV_BYTES:
        return DecodeError(EncodingKind.AES_GCM, "payload too short")

    iv, ciphertext = payload[:AES_IV_BYTES], payload[AES_IV_BYTES:]
    try:
        plain = AESGCM(derive_key(encryption_key, salt)).decrypt(iv, ciphertext, None)
        return plain.decode("utf-8")
    except InvalidTag:
        return DecodeError(EncodingKind.AES_GCM, "authentication failed (wrong key or corrupt data)")
    except ValueError:
        return DecodeError(EncodingKind.AES_GCM, "cleartext is not UTF-8")


def default_decoders(encryption_key: str | None = None) -> dict[EncodingKind, Decoder]:
    return {
        EncodingKind.NOOP: decode_noop,
        EncodingKind.LEGACY_NOOP: decode_legacy_noop,
        EncodingKind.LEGACY_HEX: decode_legacy_hex,
        EncodingKind.AES_GCM: partial(decode_aes_gcm, encryption_key=encryption_key),
    }


# -------- registry --------
class DecoderRegistry:
    def __init__(self, decoders: Mapping[EncodingKind, Decoder] | None = None,
                 encryption_key: str | None = None):
        table = dict(decoders) if decoders is not None else default_decoders(encryption_key)
        missing = [kind.value for kind in EncodingKind if kind not in table]
        if missing:
            raise ConfigurationError(f"No decoder registered for encoding(s): {', '.join(missing)}")
        self._decoders = table

    def decode(self, encoding_kind: EncodingKind | str, raw_secret: str) -> str | DecodeError:
        try:
            kind = EncodingKind(encoding_kind)
        except ValueError:
            return DecodeError(encoding_kind, "unknown encoding")
        if not isinstance(raw_secret, str):
            return DecodeError(kind, "secret is missing or not a string")
        try:
            return self._decoders[kind](raw_secret)
        except Exception as e:
            # Exception text may echo the secret; keep only its type
            return DecodeError(kind, f"decoder failed: {type(e).__name__}")

    def decode_credential(self, cred: StoredCredential) -> str | DecodeError:
        """Decode a stored credential, logging a warning (never the secret) on failure."""
        result = self.decode(cred.encoding_kind, cred.raw_secret)
        if isinstance(result, DecodeError):
            log.warning("Could not decode credentials for user %s, app %s (account %s): %s",
                        cred.username, cred.backend_kind.value,
                        cred.backend_account_username, result.reason)
        return result
