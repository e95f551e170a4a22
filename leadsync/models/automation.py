"""
Automation model - binds one Meta lead form to one Google Sheets tab.

Created and edited by the dashboard. The lead pipeline only writes
leads_count, last_lead_at and status (to "error", via the circuit breaker).
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, Text, Integer, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from leadsync.database import Base

STATUS_DRAFT = "draft"
STATUS_ACTIVE = "active"
STATUS_PAUSED = "paused"
STATUS_ERROR = "error"
AUTOMATION_STATUSES = (STATUS_DRAFT, STATUS_ACTIVE, STATUS_PAUSED, STATUS_ERROR)


class Automation(Base):
    __tablename__ = "automations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=STATUS_DRAFT
    )  # draft, active, paused, error

    # Meta source
    meta_connection_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("meta_connections.id", ondelete="SET NULL")
    )
    meta_page_id: Mapped[Optional[str]] = mapped_column(String(64))
    meta_page_name: Mapped[Optional[str]] = mapped_column(String(255))
    meta_page_token_encrypted: Mapped[Optional[str]] = mapped_column(Text)
    meta_form_id: Mapped[Optional[str]] = mapped_column(String(64))
    meta_form_name: Mapped[Optional[str]] = mapped_column(String(255))

    # Google destination
    google_connection_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("google_connections.id", ondelete="SET NULL")
    )
    spreadsheet_id: Mapped[Optional[str]] = mapped_column(String(128))
    spreadsheet_name: Mapped[Optional[str]] = mapped_column(String(255))
    sheet_name: Mapped[Optional[str]] = mapped_column(String(255))

    # Ordered [{form_field, form_field_label, sheet_column}] - order is column order
    field_mapping: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    # Webhook
    webhook_verify_token: Mapped[Optional[str]] = mapped_column(String(128))
    webhook_active: Mapped[bool] = mapped_column(Boolean, default=False)

    # Stats
    leads_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_lead_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    logs: Mapped[list["AutomationLog"]] = relationship(back_populates="automation")

    __table_args__ = (
        Index("ix_automations_page_form_status", "meta_page_id", "meta_form_id", "status"),
        Index("ix_automations_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Automation {self.name} status={self.status}>"
