"""
Credential vault tests - AES-256-GCM envelopes for stored OAuth tokens.
"""
import pytest

from leadsync.utils.encryption import CredentialVault, NONCE_BYTES, TAG_BYTES
from leadsync.utils.errors import AuthenticationFailure, ConfigurationError, MalformedEnvelope

from factories import TEST_ENCRYPTION_KEY

OTHER_KEY = "ff" * 32


def _flip_hex_char(value: str, index: int = 0) -> str:
    ch = value[index]
    replacement = "0" if ch != "0" else "1"
    return value[:index] + replacement + value[index + 1:]


class TestVaultConstruction:
    def test_missing_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            CredentialVault("")

    def test_non_hex_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            CredentialVault("z" * 64)

    def test_short_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            CredentialVault("00" * 16)

    def test_from_settings_uses_encryption_key(self, settings):
        vault = CredentialVault.from_settings(settings)
        other = CredentialVault(TEST_ENCRYPTION_KEY)
        assert other.decrypt(vault.encrypt("x")) == "x"


class TestEnvelopeRoundTrip:
    @pytest.mark.parametrize("plaintext", [
        "EAAG-page-token",
        "",
        "ya29.a0AfH6SMB" * 20,
        "unicode ✓ ção",
    ])
    def test_decrypt_returns_original(self, vault, plaintext):
        assert vault.decrypt(vault.encrypt(plaintext)) == plaintext

    def test_envelope_is_three_hex_fields(self, vault):
        envelope = vault.encrypt("secret")
        nonce, tag, ciphertext = envelope.split(":")
        assert len(bytes.fromhex(nonce)) == NONCE_BYTES
        assert len(bytes.fromhex(tag)) == TAG_BYTES
        assert len(bytes.fromhex(ciphertext)) == len("secret")

    def test_fresh_nonce_per_call(self, vault):
        first = vault.encrypt("same")
        second = vault.encrypt("same")
        assert first != second
        assert first.split(":")[0] != second.split(":")[0]


class TestTamperDetection:
    def test_tampered_ciphertext_fails_authentication(self, vault):
        nonce, tag, ciphertext = vault.encrypt("page-token").split(":")
        with pytest.raises(AuthenticationFailure):
            vault.decrypt(f"{nonce}:{tag}:{_flip_hex_char(ciphertext)}")

    def test_tampered_tag_fails_authentication(self, vault):
        nonce, tag, ciphertext = vault.encrypt("page-token").split(":")
        with pytest.raises(AuthenticationFailure):
            vault.decrypt(f"{nonce}:{_flip_hex_char(tag, 5)}:{ciphertext}")

    def test_tampered_nonce_fails_authentication(self, vault):
        nonce, tag, ciphertext = vault.encrypt("page-token").split(":")
        with pytest.raises(AuthenticationFailure):
            vault.decrypt(f"{_flip_hex_char(nonce)}:{tag}:{ciphertext}")

    def test_wrong_key_fails_authentication(self, vault):
        envelope = vault.encrypt("page-token")
        with pytest.raises(AuthenticationFailure):
            CredentialVault(OTHER_KEY).decrypt(envelope)


class TestMalformedEnvelope:
    @pytest.mark.parametrize("envelope", [
        "",
        "no-colons-at-all",
        "aa:bb",
        "aa:bb:cc:dd",
    ])
    def test_wrong_part_count(self, vault, envelope):
        with pytest.raises(MalformedEnvelope):
            vault.decrypt(envelope)

    def test_non_hex_parts(self, vault):
        with pytest.raises(MalformedEnvelope):
            vault.decrypt("zz:yy:xx")

    def test_wrong_nonce_length(self, vault):
        _, tag, ciphertext = vault.encrypt("page-token").split(":")
        with pytest.raises(MalformedEnvelope):
            vault.decrypt(f"{'00' * 12}:{tag}:{ciphertext}")

    def test_legacy_plaintext_is_not_passed_through(self, vault):
        with pytest.raises(MalformedEnvelope):
            vault.decrypt("EAAGplaintexttoken")
