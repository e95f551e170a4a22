"""
Meta webhook endpoints.

- GET  /webhooks/meta - subscription handshake (plain-text challenge echo)
- POST /webhooks/meta - leadgen deliveries, signed with X-Hub-Signature-256

The POST handler reads the raw body before any parsing: the signature is
computed over the exact bytes Meta sent.
"""
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from leadsync.schemas.api_responses import ErrorResponse, WebhookReceivedResponse
from leadsync.services.webhook_verification import HandlerResult, verify_subscription
from leadsync.utils.webhook_signatures import SIGNATURE_HEADER

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _to_response(result: HandlerResult) -> Response:
    if isinstance(result.body, str):
        return PlainTextResponse(result.body, status_code=result.status)
    return JSONResponse(result.body, status_code=result.status)


@router.get("/meta", responses={403: {"model": ErrorResponse}})
async def meta_webhook_verification(request: Request):
    """Answer Meta's hub.challenge handshake."""
    settings = request.app.state.settings
    result = verify_subscription(request.query_params, settings.meta_webhook_verify_token)
    return _to_response(result)


@router.post(
    "/meta",
    response_model=WebhookReceivedResponse,
    responses={403: {"model": ErrorResponse}},
)
async def meta_webhook_event(request: Request):
    """Meta Lead Ads delivery. Always 200 unless the signature is bad."""
    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER, "")

    processor = request.app.state.lead_processor
    result = await processor.handle(body, signature)
    if result.status != 200:
        client_ip = request.client.host if request.client else "unknown"
        logger.warning("Rejected Meta webhook: status=%d ip=%s", result.status, client_ip)
    return _to_response(result)
