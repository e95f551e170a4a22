"""
Circuit breaker - disables an automation after repeated failures.

After each error log, count error logs for the automation in the trailing
60 minutes (sliding from "now", not fixed buckets). At 5 or more the
automation moves to status "error". Nothing in the pipeline ever moves it
back; re-activation is a dashboard action.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from leadsync.models.automation import STATUS_ERROR
from leadsync.services.automation_store import AutomationStore

logger = logging.getLogger(__name__)

ERROR_THRESHOLD = 5
ERROR_WINDOW = timedelta(minutes=60)


async def apply_circuit_breaker(
    store: AutomationStore,
    automation_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> bool:
    """Trip the breaker if the error window is full. Returns True if tripped."""
    now = now or datetime.now(timezone.utc)
    error_count = await store.count_errors_since(automation_id, now - ERROR_WINDOW)

    if error_count < ERROR_THRESHOLD:
        return False

    await store.set_status(automation_id, STATUS_ERROR)
    logger.error(
        "Automation %s disabled: %d errors in the last %d minutes",
        str(automation_id)[:8], error_count, int(ERROR_WINDOW.total_seconds() // 60),
        extra={"automation_id": str(automation_id), "error_code": "circuit_open"},
    )
    return True
