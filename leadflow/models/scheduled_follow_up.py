from sqlalchemy import Column, DateTime, Text, Uuid

from leadflow.database import Base
from leadflow.models.columns import utcnow


class ScheduledFollowUp(Base):
    """Durable copy of an armed follow-up timer, one row per lead."""

    __tablename__ = "scheduled_follow_ups"

    lead_id = Column(Uuid, primary_key=True)
    tenant_id = Column(Uuid, nullable=False)
    fire_at = Column(DateTime(timezone=True), nullable=False)
    message_text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
