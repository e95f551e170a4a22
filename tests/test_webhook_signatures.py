"""
Webhook signature validation tests.
These protect the authentication boundary for all inbound lead data.
"""
import hashlib
import hmac
import json

import pytest

from leadsync.utils.webhook_signatures import (
    compute_payload_hash,
    sign_payload,
    verify_meta_signature,
)

SECRET = "my_app_secret"
BODY = json.dumps({
    "object": "page",
    "entry": [{"changes": [{"field": "leadgen", "value": {"leadgen_id": "L1"}}]}],
}).encode()


class TestSignPayload:
    def test_matches_manual_hmac(self):
        expected = hmac.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()
        assert sign_payload(SECRET, BODY) == f"sha256={expected}"


class TestVerifyMetaSignature:
    @pytest.mark.parametrize("body", [b"", b"{}", BODY, bytes(range(256))])
    def test_round_trip(self, body):
        assert verify_meta_signature(SECRET, body, sign_payload(SECRET, body)) is True

    def test_single_byte_mutation_fails(self):
        signature = sign_payload(SECRET, BODY)
        for index in (0, len(BODY) // 2, len(BODY) - 1):
            mutated = bytearray(BODY)
            mutated[index] ^= 0x01
            assert verify_meta_signature(SECRET, bytes(mutated), signature) is False

    def test_reserialized_json_fails(self):
        """Whitespace differences after re-serialization break the signature."""
        signature = sign_payload(SECRET, BODY)
        reserialized = json.dumps(json.loads(BODY), separators=(",", ":")).encode()
        assert reserialized != BODY
        assert verify_meta_signature(SECRET, reserialized, signature) is False

    def test_wrong_secret_fails(self):
        assert verify_meta_signature("other", BODY, sign_payload(SECRET, BODY)) is False

    @pytest.mark.parametrize("header", [None, "", "sha256=", "sha1=abc", "deadbeef", "sha256=not-hex"])
    def test_missing_or_malformed_header_fails(self, header):
        assert verify_meta_signature(SECRET, BODY, header) is False

    def test_digest_without_prefix_fails(self):
        digest = sign_payload(SECRET, BODY).split("=", 1)[1]
        assert verify_meta_signature(SECRET, BODY, digest) is False

    def test_empty_secret_fails(self):
        assert verify_meta_signature("", BODY, sign_payload("", BODY)) is False

    def test_non_ascii_header_does_not_raise(self):
        assert verify_meta_signature(SECRET, BODY, "sha256=é" * 10) is False


class TestComputePayloadHash:
    def test_sha256_hex(self):
        assert compute_payload_hash(b"abc") == hashlib.sha256(b"abc").hexdigest()
