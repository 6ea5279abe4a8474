from sqlalchemy import Boolean, Column, Text

from leadflow.database import Base

SYSTEM_SETTINGS_ID = "singleton"


class SystemSettings(Base):
    __tablename__ = "system_settings"

    id = Column(Text, primary_key=True, default=SYSTEM_SETTINGS_ID)
    ai_global_enabled = Column(Boolean, nullable=False, default=True)
    maintenance_mode = Column(Boolean, nullable=False, default=False)
    default_timezone = Column(Text)
