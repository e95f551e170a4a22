"""
Automation activation tests - webhook subscription plus sheet headers.
"""
import uuid

import pytest

from leadsync.models import Automation
from leadsync.models.automation import STATUS_ACTIVE, STATUS_DRAFT
from leadsync.models.automation_log import LOG_ERROR, LOG_WEBHOOK_REGISTERED
from leadsync.services.automation_setup import activate_automation
from leadsync.services.automation_store import AutomationStore
from leadsync.utils.errors import MetaApiError, PipelineError

from factories import logs_for, make_automation, make_google_connection, reload

MAPPING = [
    {"form_field": "full_name", "form_field_label": "Full name", "sheet_column": "Name"},
    {"form_field": "email", "form_field_label": "Email", "sheet_column": "Email"},
]


async def _draft(db, vault, **overrides):
    connection = await make_google_connection(db, vault)
    automation = await make_automation(
        db, vault,
        google_connection_id=connection.id,
        status=STATUS_DRAFT,
        field_mapping=MAPPING,
        **overrides,
    )
    return automation.id


class TestActivateAutomation:
    async def test_subscribes_writes_headers_and_activates(self, db, vault, mock_meta, mock_sheets):
        automation_id = await _draft(db, vault)

        await activate_automation(AutomationStore(db), vault, mock_meta, mock_sheets, automation_id)

        mock_meta.subscribe_page_to_webhook.assert_awaited_once_with("P1", "page-token")
        mock_sheets.set_sheet_headers.assert_awaited_once_with(
            "google-access-token", "sheet-123", "Leads", ["Name", "Email"],
        )
        automation = await reload(db, Automation, automation_id)
        assert automation.status == STATUS_ACTIVE
        assert automation.webhook_active is True

        registered = await logs_for(db, automation_id, LOG_WEBHOOK_REGISTERED)
        assert len(registered) == 1
        assert registered[0].data == {"page_id": "P1", "headers": ["Name", "Email"]}

    async def test_unconfirmed_subscription_fails(self, db, vault, mock_meta, mock_sheets):
        automation_id = await _draft(db, vault)
        mock_meta.subscribe_page_to_webhook.return_value = False

        with pytest.raises(MetaApiError):
            await activate_automation(AutomationStore(db), vault, mock_meta, mock_sheets, automation_id)

        mock_sheets.set_sheet_headers.assert_not_awaited()
        automation = await reload(db, Automation, automation_id)
        assert automation.status == STATUS_DRAFT
        errors = await logs_for(db, automation_id, LOG_ERROR)
        assert len(errors) == 1
        assert errors[0].message.startswith("Activation failed:")

    async def test_missing_spreadsheet_fails(self, db, vault, mock_meta, mock_sheets):
        automation_id = await _draft(db, vault, spreadsheet_id=None)

        with pytest.raises(PipelineError):
            await activate_automation(AutomationStore(db), vault, mock_meta, mock_sheets, automation_id)

        mock_meta.subscribe_page_to_webhook.assert_not_awaited()

    async def test_unknown_automation(self, db, vault, mock_meta, mock_sheets):
        with pytest.raises(PipelineError):
            await activate_automation(AutomationStore(db), vault, mock_meta, mock_sheets, uuid.uuid4())
