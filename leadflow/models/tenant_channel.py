import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from leadflow.database import Base
from leadflow.models.columns import utcnow

DEFAULT_CHANNEL_EXTERNAL_ID = "default"


class TenantChannel(Base):
    __tablename__ = "tenant_channels"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False)
    name = Column(Text, nullable=False)
    external_id = Column(Text, nullable=False)  # gateway instance_id or "default"
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    tenant = relationship("Tenant", back_populates="channels")
