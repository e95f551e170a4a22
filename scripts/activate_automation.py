"""
Activate an automation - subscribe its Meta page to leadgen webhooks, write
the mapped column headers to the sheet, and set status=active.

Also the only way out of status=error besides the dashboard: the operator
re-runs activation after fixing the cause.

Usage:
    python -m scripts.activate_automation <automation-id>             # dry-run
    python -m scripts.activate_automation <automation-id> --commit    # apply
"""
import argparse
import asyncio
import logging
import uuid

from leadsync.config import get_settings
from leadsync.integrations.google_sheets import GoogleSheetsClient
from leadsync.integrations.meta_graph import MetaGraphClient
from leadsync.services.automation_setup import activate_automation
from leadsync.services.automation_store import AutomationStore
from leadsync.utils.encryption import CredentialVault

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


async def run(automation_id: uuid.UUID, commit: bool) -> None:
    settings = get_settings()
    vault = CredentialVault.from_settings(settings)
    meta = MetaGraphClient.from_settings(settings)
    sheets = GoogleSheetsClient.from_settings(settings)

    try:
        async with AutomationStore.open() as store:
            automation = await store.get_automation(automation_id)
            if automation is None:
                logger.error("Automation %s not found", automation_id)
                return

            logger.info(
                "Automation %s: status=%s page=%s form=%s sheet=%s/%s columns=%d",
                automation.name, automation.status, automation.meta_page_id,
                automation.meta_form_id, automation.spreadsheet_name,
                automation.sheet_name, len(automation.field_mapping or []),
            )
            if not commit:
                logger.info("Dry run - pass --commit to activate")
                return

            await activate_automation(store, vault, meta, sheets, automation_id)
            logger.info("Automation %s is active", automation_id)
    finally:
        await meta.aclose()
        await sheets.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Activate a lead sync automation")
    parser.add_argument("automation_id", type=uuid.UUID)
    parser.add_argument("--commit", action="store_true", help="Apply changes (default: dry run)")
    args = parser.parse_args()
    asyncio.run(run(args.automation_id, args.commit))


if __name__ == "__main__":
    main()
