"""
Simulate an inbound Meta leadgen webhook against a running LeadSync instance.

The payload is signed with META_APP_SECRET exactly as Meta signs it, so it
passes signature verification. The lead itself is still fetched from the
Graph API, so use a real test lead id (Lead Ads Testing Tool) end to end.

Usage:
    python scripts/simulate_meta_lead.py --page P1 --form F1 --lead L1
    python scripts/simulate_meta_lead.py --verify
    python scripts/simulate_meta_lead.py --page P1 --form F1 --lead L1 --bad-signature
"""
import argparse
import asyncio
import json
import logging
import os
import time

import httpx

from leadsync.utils.webhook_signatures import SIGNATURE_HEADER, sign_payload

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

BASE_URL = "http://localhost:3001"


def build_payload(page_id: str, form_id: str, lead_id: str) -> dict:
    now = int(time.time())
    return {
        "object": "page",
        "entry": [{
            "id": page_id,
            "time": now,
            "changes": [{
                "field": "leadgen",
                "value": {
                    "page_id": page_id,
                    "form_id": form_id,
                    "leadgen_id": lead_id,
                    "created_time": now,
                },
            }],
        }],
    }


async def simulate_lead(base_url: str, app_secret: str, payload: dict, bad_signature: bool):
    """POST a signed leadgen delivery."""
    body = json.dumps(payload).encode("utf-8")
    signature = sign_payload(app_secret, body)
    if bad_signature:
        signature = signature[:-1] + ("0" if signature[-1] != "0" else "1")
    async with httpx.AsyncClient(timeout=30) as client:
        resp = await client.post(
            f"{base_url}/webhooks/meta",
            content=body,
            headers={"Content-Type": "application/json", SIGNATURE_HEADER: signature},
        )
        logger.info("Webhook response: %s %s", resp.status_code, resp.text)
        return resp


async def simulate_verification(base_url: str, verify_token: str):
    """Run the hub.challenge handshake."""
    params = {
        "hub.mode": "subscribe",
        "hub.verify_token": verify_token,
        "hub.challenge": "challenge-123",
    }
    async with httpx.AsyncClient(timeout=30) as client:
        resp = await client.get(f"{base_url}/webhooks/meta", params=params)
        logger.info("Verification response: %s %s", resp.status_code, resp.text)
        return resp


async def main():
    parser = argparse.ArgumentParser(description="Simulate Meta leadgen webhooks")
    parser.add_argument("--base-url", default=BASE_URL)
    parser.add_argument("--page", default="P1")
    parser.add_argument("--form", default="F1")
    parser.add_argument("--lead", default="L1")
    parser.add_argument("--verify", action="store_true", help="Run the GET handshake instead")
    parser.add_argument("--bad-signature", action="store_true")
    args = parser.parse_args()

    if args.verify:
        await simulate_verification(args.base_url, os.environ.get("META_WEBHOOK_VERIFY_TOKEN", ""))
        return

    app_secret = os.environ.get("META_APP_SECRET")
    if not app_secret:
        parser.error("META_APP_SECRET must be set to sign the payload")

    logger.info("Simulating lead %s (page=%s form=%s)...", args.lead, args.page, args.form)
    await simulate_lead(
        args.base_url, app_secret, build_payload(args.page, args.form, args.lead), args.bad_signature,
    )


if __name__ == "__main__":
    asyncio.run(main())
