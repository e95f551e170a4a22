"""
Encryption utilities for stored OAuth tokens (Meta page tokens, Google tokens).
Uses AES-256-GCM with the configured ENCRYPTION_KEY.

Envelope format (storage contract, shared with the dashboard):
    <nonce hex>:<tag hex>:<ciphertext hex>
"""
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from leadsync.utils.errors import AuthenticationFailure, ConfigurationError, MalformedEnvelope

logger = logging.getLogger(__name__)

KEY_BYTES = 32
NONCE_BYTES = 16
TAG_BYTES = 16


class CredentialVault:
    """Symmetric encrypt/decrypt of secrets at rest."""

    def __init__(self, key_hex: str):
        if not key_hex:
            raise ConfigurationError("ENCRYPTION_KEY not set")
        try:
            key = bytes.fromhex(key_hex)
        except ValueError:
            raise ConfigurationError("ENCRYPTION_KEY must be hex-encoded")
        if len(key) != KEY_BYTES:
            raise ConfigurationError(
                f"ENCRYPTION_KEY must be {KEY_BYTES} bytes, got {len(key)}"
            )
        self._aead = AESGCM(key)

    @classmethod
    def from_settings(cls, settings=None) -> "CredentialVault":
        if settings is None:
            from leadsync.config import get_settings
            settings = get_settings()
        return cls(settings.encryption_key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string into a `nonce:tag:ciphertext` envelope."""
        nonce = os.urandom(NONCE_BYTES)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
        return f"{nonce.hex()}:{tag.hex()}:{ciphertext.hex()}"

    def decrypt(self, envelope: str) -> str:
        """
        Decrypt an envelope produced by encrypt().
        Raises MalformedEnvelope or AuthenticationFailure - never returns
        the input unchanged.
        """
        parts = envelope.split(":") if envelope else []
        if len(parts) != 3:
            raise MalformedEnvelope("Invalid encrypted text format")

        nonce_hex, tag_hex, ciphertext_hex = parts
        try:
            nonce = bytes.fromhex(nonce_hex)
            tag = bytes.fromhex(tag_hex)
            ciphertext = bytes.fromhex(ciphertext_hex)
        except ValueError:
            raise MalformedEnvelope("Encrypted text is not valid hex")
        if len(nonce) != NONCE_BYTES or len(tag) != TAG_BYTES:
            raise MalformedEnvelope("Invalid nonce or tag length")

        try:
            plaintext = self._aead.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag:
            raise AuthenticationFailure("Authentication tag mismatch")
        return plaintext.decode("utf-8")
