import uuid

from sqlalchemy import Column, DateTime, Text, Uuid

from leadflow.database import Base
from leadflow.models.columns import JSONType, utcnow


class SystemLog(Base):
    __tablename__ = "system_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid)
    category = Column(Text, nullable=False)  # ai, whatsapp
    message = Column(Text, nullable=False)
    meta = Column(JSONType)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
