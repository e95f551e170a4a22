"""
Tests for the Meta hub.challenge subscription handshake.
"""
from leadsync.services.webhook_verification import verify_subscription

TOKEN = "verify-me"


def _query(mode="subscribe", token=TOKEN, challenge="1158201444"):
    query = {}
    if mode is not None:
        query["hub.mode"] = mode
    if token is not None:
        query["hub.verify_token"] = token
    if challenge is not None:
        query["hub.challenge"] = challenge
    return query


class TestVerifySubscription:
    def test_valid_handshake_echoes_challenge(self):
        result = verify_subscription(_query(), TOKEN)
        assert result.status == 200
        assert result.body == "1158201444"

    def test_challenge_is_plain_string_not_json(self):
        result = verify_subscription(_query(challenge="abc"), TOKEN)
        assert isinstance(result.body, str)

    def test_wrong_token_rejected(self):
        result = verify_subscription(_query(token="nope"), TOKEN)
        assert result.status == 403
        assert result.body == {"error": "Verification failed"}

    def test_wrong_mode_rejected(self):
        assert verify_subscription(_query(mode="unsubscribe"), TOKEN).status == 403

    def test_missing_params_rejected(self):
        assert verify_subscription({}, TOKEN).status == 403

    def test_unconfigured_token_rejects_empty_token(self):
        assert verify_subscription(_query(token=""), "").status == 403

    def test_repeatable(self):
        first = verify_subscription(_query(), TOKEN)
        second = verify_subscription(_query(), TOKEN)
        assert (first.status, first.body) == (second.status, second.body)
