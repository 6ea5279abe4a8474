import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from leadflow.database import Base
from leadflow.models.columns import JSONType, utcnow


class Lead(Base):
    __tablename__ = "leads"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False)
    stage_id = Column(Uuid, ForeignKey("pipeline_stages.id"), nullable=False)
    channel_id = Column(Uuid, ForeignKey("tenant_channels.id"))
    phone = Column(Text, nullable=False)
    name = Column(Text)
    temperature = Column(Text, nullable=False, default="cold")  # cold, warm, hot
    ai_active = Column(Boolean, nullable=False, default=True)
    assigned_user_id = Column(Text)
    notes = Column(Text)
    attributes = Column("metadata", JSONType, nullable=False, default=dict)
    last_message_at = Column(DateTime(timezone=True))
    last_message_preview = Column(Text)
    no_response_since = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    stage = relationship("PipelineStage")
    channel = relationship("TenantChannel")
    messages = relationship("Message", back_populates="lead")
