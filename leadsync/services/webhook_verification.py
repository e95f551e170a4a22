"""
Meta webhook subscription handshake (GET /webhooks/meta).
"""
import hmac
import logging
from dataclasses import dataclass
from typing import Any, Mapping

logger = logging.getLogger(__name__)


@dataclass
class HandlerResult:
    """HTTP status + body. A str body is sent as text/plain, anything else as JSON."""
    status: int
    body: Any


def verify_subscription(query: Mapping[str, str], verify_token: str) -> HandlerResult:
    """Echo hub.challenge when mode is subscribe and the verify token matches."""
    mode = query.get("hub.mode")
    token = query.get("hub.verify_token") or ""
    challenge = query.get("hub.challenge") or ""

    if (
        mode == "subscribe"
        and verify_token
        and hmac.compare_digest(token.encode("utf-8"), verify_token.encode("utf-8"))
    ):
        logger.info("Meta webhook verification successful")
        return HandlerResult(status=200, body=challenge)

    logger.warning("Meta webhook verification failed (mode=%s)", mode)
    return HandlerResult(status=403, body={"error": "Verification failed"})
