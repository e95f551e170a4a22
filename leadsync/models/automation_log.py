"""
Automation log - append-only audit trail per automation.

Also the substrate for two derived queries: idempotency (a lead_received row
for automation + lead id) and the circuit breaker window (error rows in the
trailing hour).
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, Text, DateTime, ForeignKey, Index, text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from leadsync.database import Base

LOG_LEAD_RECEIVED = "lead_received"
LOG_ERROR = "error"
LOG_WEBHOOK_REGISTERED = "webhook_registered"
LOG_CONNECTION = "connection"
LOG_DISCONNECTION = "disconnection"
LOG_KINDS = (
    LOG_LEAD_RECEIVED, LOG_ERROR, LOG_WEBHOOK_REGISTERED, LOG_CONNECTION, LOG_DISCONNECTION,
)


class AutomationLog(Base):
    __tablename__ = "automation_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    automation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("automations.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[str] = mapped_column(
        String(30), nullable=False
    )  # lead_received, error, webhook_registered, connection, disconnection
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[Optional[dict]] = mapped_column(JSONB)
    lead_id: Mapped[Optional[str]] = mapped_column(String(64))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    automation: Mapped["Automation"] = relationship(back_populates="logs")

    __table_args__ = (
        Index("ix_automation_logs_automation_kind_created", "automation_id", "kind", "created_at"),
        # At most one lead_received row per automation + lead
        Index(
            "uq_automation_logs_lead_received",
            "automation_id", "lead_id",
            unique=True,
            postgresql_where=text("kind = 'lead_received'"),
            sqlite_where=text("kind = 'lead_received'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<AutomationLog {self.kind} lead={self.lead_id}>"
