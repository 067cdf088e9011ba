"""Tests for the credential decoder registry."""

import logging
import os

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from scrobbler.decoders import DecodeError, DecoderRegistry, decode_legacy_hex, derive_key
from scrobbler.errors import ConfigurationError
from scrobbler.models import BackendKind, EncodingKind

from tests.conftest import credential

KEY = "server-side-key"


def aes_encode(cleartext: str, key: str = KEY) -> str:
    salt, iv = os.urandom(8), os.urandom(16)
    ciphertext = AESGCM(derive_key(key, salt)).encrypt(iv, cleartext.encode("utf-8"), None)
    return f"{salt.hex()}:{(iv + ciphertext).hex()}"


class TestDecoders:
    def test_noop_returns_raw(self):
        registry = DecoderRegistry()

        assert registry.decode(EncodingKind.NOOP, "hunter2") == "hunter2"
        assert registry.decode(EncodingKind.LEGACY_NOOP, "hunter2") == "hunter2"

    def test_legacy_hex_with_and_without_prefix(self):
        encoded = "hunter2".encode("utf-8").hex()

        assert decode_legacy_hex("enc:" + encoded) == "hunter2"
        assert decode_legacy_hex(encoded) == "hunter2"

    def test_legacy_hex_malformed_returns_error(self):
        result = decode_legacy_hex("enc:zz-not-hex")

        assert isinstance(result, DecodeError)
        assert result.encoding_kind is EncodingKind.LEGACY_HEX

    def test_aes_gcm_round_trip(self):
        registry = DecoderRegistry(encryption_key=KEY)

        assert registry.decode(EncodingKind.AES_GCM, aes_encode("tøken")) == "tøken"

    def test_aes_gcm_wrong_key_returns_error(self):
        registry = DecoderRegistry(encryption_key="another-key")

        result = registry.decode(EncodingKind.AES_GCM, aes_encode("token"))

        assert isinstance(result, DecodeError)
        assert "authentication failed" in result.reason

    @pytest.mark.parametrize("raw", ["", "no-separator", "zz:zz", "00:0011"])
    def test_aes_gcm_malformed_returns_error(self, raw):
        registry = DecoderRegistry(encryption_key=KEY)

        assert isinstance(registry.decode(EncodingKind.AES_GCM, raw), DecodeError)

    def test_aes_gcm_without_key_returns_error(self):
        registry = DecoderRegistry()

        result = registry.decode(EncodingKind.AES_GCM, aes_encode("token"))

        assert isinstance(result, DecodeError)
        assert "no encryption key" in result.reason


class TestRegistry:
    def test_unknown_encoding_is_an_error_value(self):
        registry = DecoderRegistry()

        result = registry.decode("rot13", "uryyb")

        assert result == DecodeError("rot13", "unknown encoding")

    def test_missing_secret_is_an_error_value(self):
        registry = DecoderRegistry()

        assert isinstance(registry.decode(EncodingKind.LEGACY_HEX, None), DecodeError)

    def test_incomplete_table_fails_at_construction(self):
        with pytest.raises(ConfigurationError) as exc_info:
            DecoderRegistry({EncodingKind.NOOP: lambda raw: raw})

        assert "legacyhex" in str(exc_info.value)

    def test_decode_credential_logs_without_secret(self, caplog):
        registry = DecoderRegistry()
        cred = credential("bob", BackendKind.LASTFM, "enc:SECRET-not-hex",
                          EncodingKind.LEGACY_HEX, account="bob_fm")

        with caplog.at_level(logging.WARNING):
            result = registry.decode_credential(cred)

        assert isinstance(result, DecodeError)
        assert len(caplog.records) == 1
        message = caplog.records[0].getMessage()
        assert "bob" in message
        assert "lastfm" in message
        assert "bob_fm" in message
        assert "SECRET" not in message

    def test_decode_credential_success_is_silent(self, caplog):
        registry = DecoderRegistry()
        cred = credential("alice", BackendKind.LISTENBRAINZ, "token")

        with caplog.at_level(logging.DEBUG):
            assert registry.decode_credential(cred) == "token"

        assert caplog.records == []

    def test_raising_decoder_becomes_error_value(self):
        def explode(raw):
            raise RuntimeError(f"cannot handle {raw}")

        registry = DecoderRegistry({kind: explode for kind in EncodingKind})

        result = registry.decode(EncodingKind.NOOP, "hunter2")

        assert result == DecodeError(EncodingKind.NOOP, "decoder failed: RuntimeError")
        assert "hunter2" not in result.reason
