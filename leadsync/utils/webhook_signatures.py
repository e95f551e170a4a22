"""
Webhook signature validation - verify incoming Meta webhooks are authentic.

Meta signs every POST with HMAC-SHA256 of the raw body using the app secret
and sends it as `X-Hub-Signature-256: sha256=<hex>`. The raw bytes must be
captured before JSON parsing; re-serialized JSON would not match.
"""
import hashlib
import hmac
import logging
from typing import Optional

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


def sign_payload(app_secret: str, body: bytes) -> str:
    """Compute the `sha256=<hex>` header value for a raw body."""
    digest = hmac.new(app_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_meta_signature(
    app_secret: str,
    body: bytes,
    signature: Optional[str],
) -> bool:
    """
    Validate a Meta webhook signature.
    Returns False for missing, malformed or mismatched signatures - never raises.
    """
    if not app_secret or not signature:
        logger.warning("Missing %s header", SIGNATURE_HEADER)
        return False

    if not signature.startswith(SIGNATURE_PREFIX):
        return False

    try:
        expected = sign_payload(app_secret, body)
        return hmac.compare_digest(
            expected.encode("utf-8"), signature.encode("utf-8")
        )
    except Exception as e:
        logger.error("HMAC-SHA256 validation error: %s", str(e))
        return False


def compute_payload_hash(body: bytes) -> str:
    """Compute SHA-256 hash of raw payload for audit logging."""
    return hashlib.sha256(body).hexdigest()
