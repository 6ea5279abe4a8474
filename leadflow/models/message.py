import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from leadflow.database import Base
from leadflow.models.columns import utcnow


class Message(Base):
    __tablename__ = "messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    lead_id = Column(Uuid, ForeignKey("leads.id"), nullable=False)
    tenant_id = Column(Uuid, nullable=False)
    source = Column(Text, nullable=False)  # human, ai
    direction = Column(Text, nullable=False)  # in, out
    body = Column(Text)
    media_url = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    lead = relationship("Lead", back_populates="messages")
