import uuid

from sqlalchemy import Column, ForeignKey, Integer, Text, Uuid

from leadflow.database import Base


class PipelineStage(Base):
    __tablename__ = "pipeline_stages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False)
    name = Column(Text, nullable=False)
    type = Column(Text, nullable=False)  # new, in_progress, full_data, wants_call, refused, closed
    position = Column("order", Integer, nullable=False, default=0)
