from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import relationship

from leadflow.database import Base


class TenantSettings(Base):
    __tablename__ = "tenant_settings"

    tenant_id = Column(Uuid, ForeignKey("tenants.id"), primary_key=True)

    # Gateway credentials
    gateway_api_token = Column(Text)
    gateway_instance_id = Column(Text)
    webhook_key = Column(Text, unique=True)

    # Automated replies
    ai_enabled = Column(Boolean, nullable=False, default=True)
    suggest_call = Column(Boolean, nullable=False, default=False)
    ask_questions = Column(Boolean, nullable=False, default=False)

    # Quiet hours, local "HH:MM"
    night_mode_enabled = Column(Boolean, nullable=False, default=False)
    night_mode_start = Column(Text)
    night_mode_end = Column(Text)
    night_mode_message = Column(Text)
    timezone = Column(Text)  # IANA name, None = server local time

    follow_up_enabled = Column(Boolean, nullable=False, default=False)
    follow_up_delay_minutes = Column(Integer, nullable=False, default=60)
    follow_up_message = Column(Text)

    tenant = relationship("Tenant", back_populates="settings")
