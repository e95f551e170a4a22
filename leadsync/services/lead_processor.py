"""
Lead event processor - Meta leadgen webhook -> Google Sheets row.

Per delivery:
1. Verify X-Hub-Signature-256 over the raw body (403 on failure)
2. Acknowledge non-page objects without processing
3. Process every leadgen change in order, each lead isolated from its siblings

Per lead (named stages):
match -> dedup -> decrypt page token -> fetch lead -> map fields ->
resolve Google token (refresh if expired) -> append -> record outcome.

Any failure from decrypt through append becomes an `error` log followed by
the circuit breaker. Processing failures never change the HTTP response:
the delivery is always acknowledged with 200 so Meta does not redeliver.
"""
import json
import logging
from contextlib import AbstractAsyncContextManager
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import ValidationError

from leadsync.integrations.google_sheets import GoogleSheetsClient
from leadsync.integrations.meta_graph import MetaGraphClient
from leadsync.models.automation import Automation
from leadsync.models.automation_log import LOG_ERROR
from leadsync.schemas.meta_payloads import LeadgenValue, MetaLead, MetaWebhookPayload
from leadsync.services.automation_store import AutomationStore
from leadsync.services.circuit_breaker import apply_circuit_breaker
from leadsync.services.field_mapping import map_lead_fields
from leadsync.services.sheet_credentials import resolve_sheet_access_token
from leadsync.services.webhook_verification import HandlerResult
from leadsync.utils.encryption import CredentialVault
from leadsync.utils.errors import PipelineError
from leadsync.utils.logging import lead_log_context
from leadsync.utils.webhook_signatures import compute_payload_hash, verify_meta_signature

logger = logging.getLogger(__name__)

PAGE_OBJECT = "page"
RECEIVED = {"received": True}

StoreFactory = Callable[[], AbstractAsyncContextManager[AutomationStore]]


class LeadOutcome(str, Enum):
    PROCESSED = "processed"
    NO_AUTOMATION = "no_automation"
    DUPLICATE = "duplicate"
    INVALID = "invalid"
    FAILED = "failed"


class LeadEventProcessor:
    """Orchestrates one webhook delivery. Built once at startup with its collaborators."""

    def __init__(
        self,
        vault: CredentialVault,
        meta: MetaGraphClient,
        sheets: GoogleSheetsClient,
        app_secret: str,
        store_factory: StoreFactory = AutomationStore.open,
    ):
        self.vault = vault
        self.meta = meta
        self.sheets = sheets
        self.app_secret = app_secret
        self.store_factory = store_factory

    async def handle(self, raw_body: bytes, signature: Optional[str]) -> HandlerResult:
        """Entry point for POST /webhooks/meta."""
        if not verify_meta_signature(self.app_secret, raw_body, signature):
            logger.warning("Invalid Meta webhook signature")
            return HandlerResult(status=403, body={"error": "Invalid signature"})

        try:
            payload = MetaWebhookPayload.model_validate(json.loads(raw_body))
        except (ValueError, ValidationError) as e:
            logger.warning("Unparseable Meta webhook body acknowledged: %s", str(e)[:200])
            return HandlerResult(status=200, body=RECEIVED)

        if payload.object != PAGE_OBJECT:
            logger.info("Ignoring Meta webhook for object=%s", payload.object)
            return HandlerResult(status=200, body=RECEIVED)

        changes = payload.leadgen_values()
        logger.info(
            "Meta webhook received: %d leadgen events (payload %s)",
            len(changes), compute_payload_hash(raw_body)[:12],
        )
        for value in changes:
            await self.process_change(value)

        return HandlerResult(status=200, body=RECEIVED)

    async def process_change(self, value: Any) -> LeadOutcome:
        """Validate one raw leadgen change value, then process it. Never raises."""
        try:
            event = LeadgenValue.model_validate(value)
        except ValidationError as e:
            logger.warning(
                "Malformed leadgen change skipped: %s", str(e)[:200],
                extra={"error_code": "invalid_change"},
            )
            return LeadOutcome.INVALID
        return await self.process_lead(event)

    async def process_lead(self, event: LeadgenValue) -> LeadOutcome:
        """Process one lead. Never raises - siblings in the batch always run."""
        with lead_log_context(
            lead_id=event.leadgen_id, page_id=event.page_id, form_id=event.form_id,
        ):
            if not event.leadgen_id:
                logger.warning("Leadgen change without leadgen_id skipped")
                return LeadOutcome.INVALID

            logger.info(
                "Processing lead %s from page %s, form %s",
                event.leadgen_id, event.page_id, event.form_id,
            )
            try:
                async with self.store_factory() as store:
                    return await self._run_stages(store, event)
            except Exception as e:
                logger.error(
                    "Lead %s could not be recorded: %s", event.leadgen_id, str(e), exc_info=True,
                )
                return LeadOutcome.FAILED

    async def _run_stages(self, store: AutomationStore, event: LeadgenValue) -> LeadOutcome:
        automation = await store.find_active_automation(event.page_id, event.form_id)
        if automation is None:
            logger.info(
                "No active automation for page %s, form %s", event.page_id, event.form_id,
            )
            return LeadOutcome.NO_AUTOMATION

        with lead_log_context(automation_id=str(automation.id)):
            if await store.has_processed_lead(automation.id, event.leadgen_id):
                logger.info("Lead %s already processed", event.leadgen_id)
                return LeadOutcome.DUPLICATE

            try:
                lead = await self._fetch_lead(automation, event.leadgen_id)
                values = map_lead_fields(automation.field_mapping, lead.field_data)
                access_token = await self._resolve_sheet_token(store, automation)
                await self._append(automation, access_token, values)
            except Exception as e:
                await self._record_failure(store, automation, event.leadgen_id, e)
                return LeadOutcome.FAILED

            return await self._record_success(store, automation, event.leadgen_id, lead, values)

    # --- Stages ---

    async def _fetch_lead(self, automation: Automation, lead_id: str) -> MetaLead:
        if not automation.meta_page_token_encrypted:
            raise PipelineError("Automation has no Meta page token")
        page_token = self.vault.decrypt(automation.meta_page_token_encrypted)
        return await self.meta.get_lead(lead_id, page_token)

    async def _resolve_sheet_token(self, store: AutomationStore, automation: Automation) -> str:
        return await resolve_sheet_access_token(
            store, self.vault, self.sheets, automation.google_connection_id,
        )

    async def _append(self, automation: Automation, access_token: str, values: list[str]) -> None:
        if not automation.spreadsheet_id or not automation.sheet_name:
            raise PipelineError("Automation has no target spreadsheet")
        await self.sheets.append_row(
            access_token, automation.spreadsheet_id, automation.sheet_name, values,
        )

    async def _record_success(
        self,
        store: AutomationStore,
        automation: Automation,
        lead_id: str,
        lead: MetaLead,
        values: list[str],
    ) -> LeadOutcome:
        recorded = await store.record_lead_received(
            automation.id,
            lead_id,
            f"Lead {lead_id} processed successfully",
            {
                "lead_data": [d.model_dump() for d in lead.field_data],
                "mapped_values": values,
            },
        )
        if not recorded:
            return LeadOutcome.DUPLICATE

        await store.increment_lead_count(automation.id)
        logger.info("Lead %s processed successfully", lead_id)
        return LeadOutcome.PROCESSED

    async def _record_failure(
        self,
        store: AutomationStore,
        automation: Automation,
        lead_id: str,
        error: Exception,
    ) -> None:
        automation_id = automation.id
        logger.error(
            "Error processing lead %s: %s", lead_id, str(error),
            exc_info=True,
            extra={"error_code": type(error).__name__},
        )
        # Discard anything a failed stage left pending; rollback expires loaded rows
        await store.rollback()
        await store.add_log(
            automation_id,
            LOG_ERROR,
            f"Error processing lead {lead_id}: {error}",
            {"error": str(error), "error_type": type(error).__name__},
            lead_id,
        )
        await apply_circuit_breaker(store, automation_id)
