"""
Automation store gateway - the queries and single-row writes the lead
pipeline needs against automations, their logs and Google connections.

Every write commits immediately: there are no multi-row transactions, and a
failure later in the pipeline never rolls back an earlier write (for example
a refreshed Google token survives a failed append).
"""
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Optional

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leadsync.models.automation import Automation, STATUS_ACTIVE
from leadsync.models.automation_log import AutomationLog, LOG_ERROR, LOG_LEAD_RECEIVED
from leadsync.models.connections import GoogleConnection

logger = logging.getLogger(__name__)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps read back from the database as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AutomationStore:
    """Persistent-store contract for one unit of pipeline work."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @classmethod
    @asynccontextmanager
    async def open(
        cls, session_factory: Optional[Callable[[], AsyncSession]] = None,
    ) -> AsyncIterator["AutomationStore"]:
        """Yield a store bound to a fresh session, closed on exit."""
        if session_factory is None:
            from leadsync.database import async_session_factory
            session_factory = async_session_factory
        async with session_factory() as session:
            yield cls(session)

    async def rollback(self) -> None:
        await self.session.rollback()

    # --- Reads ---

    async def find_active_automation(self, page_id: str, form_id: str) -> Optional[Automation]:
        """Oldest active automation bound to this page + form, if any."""
        result = await self.session.execute(
            select(Automation)
            .where(
                and_(
                    Automation.meta_page_id == page_id,
                    Automation.meta_form_id == form_id,
                    Automation.status == STATUS_ACTIVE,
                )
            )
            .order_by(Automation.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_automation(self, automation_id: uuid.UUID) -> Optional[Automation]:
        return await self.session.get(Automation, automation_id)

    async def has_processed_lead(self, automation_id: uuid.UUID, lead_id: str) -> bool:
        """Idempotency guard: does a lead_received log exist for this lead?"""
        result = await self.session.execute(
            select(func.count(AutomationLog.id)).where(
                and_(
                    AutomationLog.automation_id == automation_id,
                    AutomationLog.lead_id == lead_id,
                    AutomationLog.kind == LOG_LEAD_RECEIVED,
                )
            )
        )
        return (result.scalar() or 0) > 0

    async def get_google_connection(
        self, connection_id: Optional[uuid.UUID],
    ) -> Optional[GoogleConnection]:
        if connection_id is None:
            return None
        return await self.session.get(GoogleConnection, connection_id)

    async def count_errors_since(self, automation_id: uuid.UUID, since: datetime) -> int:
        result = await self.session.execute(
            select(func.count(AutomationLog.id)).where(
                and_(
                    AutomationLog.automation_id == automation_id,
                    AutomationLog.kind == LOG_ERROR,
                    AutomationLog.created_at >= since,
                )
            )
        )
        return result.scalar() or 0

    # --- Writes ---

    async def add_log(
        self,
        automation_id: uuid.UUID,
        kind: str,
        message: str,
        data: Optional[dict] = None,
        lead_id: Optional[str] = None,
    ) -> AutomationLog:
        """Append one audit log row."""
        log = AutomationLog(
            automation_id=automation_id,
            kind=kind,
            message=message,
            data=data,
            lead_id=lead_id,
            created_at=datetime.now(timezone.utc),
        )
        self.session.add(log)
        await self.session.commit()
        return log

    async def record_lead_received(
        self,
        automation_id: uuid.UUID,
        lead_id: str,
        message: str,
        data: dict,
    ) -> bool:
        """
        Write the lead_received log. Returns False when a concurrent delivery
        already wrote one (unique index on automation + lead).
        """
        try:
            await self.add_log(automation_id, LOG_LEAD_RECEIVED, message, data, lead_id)
        except IntegrityError:
            await self.session.rollback()
            logger.info(
                "Lead %s already recorded for automation %s",
                lead_id, str(automation_id)[:8],
                extra={"automation_id": str(automation_id), "lead_id": lead_id},
            )
            return False
        return True

    async def increment_lead_count(
        self, automation_id: uuid.UUID, at: Optional[datetime] = None,
    ) -> None:
        await self.session.execute(
            update(Automation)
            .where(Automation.id == automation_id)
            .values(
                leads_count=Automation.leads_count + 1,
                last_lead_at=at or datetime.now(timezone.utc),
            )
        )
        await self.session.commit()

    async def update_google_token(
        self,
        connection_id: uuid.UUID,
        access_token_encrypted: str,
        expires_at: datetime,
    ) -> None:
        await self.session.execute(
            update(GoogleConnection)
            .where(GoogleConnection.id == connection_id)
            .values(
                access_token_encrypted=access_token_encrypted,
                token_expires_at=expires_at,
            )
        )
        await self.session.commit()

    async def set_status(self, automation_id: uuid.UUID, status: str) -> None:
        await self.session.execute(
            update(Automation).where(Automation.id == automation_id).values(status=status)
        )
        await self.session.commit()

    async def set_webhook_active(self, automation_id: uuid.UUID, active: bool) -> None:
        await self.session.execute(
            update(Automation)
            .where(Automation.id == automation_id)
            .values(webhook_active=active)
        )
        await self.session.commit()
