import uuid

from sqlalchemy import Column, DateTime, Text, Uuid
from sqlalchemy.orm import relationship

from leadflow.database import Base
from leadflow.models.columns import utcnow


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    settings = relationship("TenantSettings", back_populates="tenant", uselist=False)
    channels = relationship("TenantChannel", back_populates="tenant")
