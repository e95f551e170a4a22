"""
Automation activation - subscribes the Meta page to leadgen webhooks and
writes the mapped column headers to the target sheet, then marks the
automation active.

Runs from the operator script, never from the webhook path.
"""
import logging
import uuid

from leadsync.integrations.google_sheets import GoogleSheetsClient
from leadsync.integrations.meta_graph import MetaGraphClient
from leadsync.models.automation import STATUS_ACTIVE
from leadsync.models.automation_log import LOG_ERROR, LOG_WEBHOOK_REGISTERED
from leadsync.services.automation_store import AutomationStore
from leadsync.services.field_mapping import sheet_headers
from leadsync.services.sheet_credentials import resolve_sheet_access_token
from leadsync.utils.encryption import CredentialVault
from leadsync.utils.errors import MetaApiError, PipelineError

logger = logging.getLogger(__name__)


async def activate_automation(
    store: AutomationStore,
    vault: CredentialVault,
    meta: MetaGraphClient,
    sheets: GoogleSheetsClient,
    automation_id: uuid.UUID,
) -> None:
    """
    Register the webhook and sheet headers for an automation and set it active.
    Failures are logged on the automation and re-raised.
    """
    automation = await store.get_automation(automation_id)
    if automation is None:
        raise PipelineError(f"Automation {automation_id} not found")

    try:
        if not automation.meta_page_id or not automation.meta_page_token_encrypted:
            raise PipelineError("Automation has no Meta page")
        if not automation.spreadsheet_id or not automation.sheet_name:
            raise PipelineError("Automation has no target spreadsheet")

        page_token = vault.decrypt(automation.meta_page_token_encrypted)
        if not await meta.subscribe_page_to_webhook(automation.meta_page_id, page_token):
            raise MetaApiError("Meta did not confirm the webhook subscription")

        access_token = await resolve_sheet_access_token(
            store, vault, sheets, automation.google_connection_id,
        )
        headers = sheet_headers(automation.field_mapping)
        await sheets.set_sheet_headers(
            access_token, automation.spreadsheet_id, automation.sheet_name, headers,
        )
    except Exception as e:
        await store.rollback()
        await store.add_log(
            automation_id, LOG_ERROR, f"Activation failed: {e}", {"error": str(e)},
        )
        logger.error("Activation of automation %s failed: %s", str(automation_id)[:8], str(e))
        raise

    page_id = automation.meta_page_id
    await store.set_webhook_active(automation_id, True)
    await store.set_status(automation_id, STATUS_ACTIVE)
    await store.add_log(
        automation_id,
        LOG_WEBHOOK_REGISTERED,
        f"Webhook registered for page {page_id}",
        {"page_id": page_id, "headers": headers},
    )
    logger.info(
        "Automation %s activated", str(automation_id)[:8],
        extra={"automation_id": str(automation_id), "page_id": page_id},
    )
