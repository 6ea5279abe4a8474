from leadflow.models.lead import Lead
from leadflow.models.message import Message
from leadflow.models.pipeline_stage import PipelineStage
from leadflow.models.scheduled_follow_up import ScheduledFollowUp
from leadflow.models.system_log import SystemLog
from leadflow.models.system_settings import SystemSettings
from leadflow.models.tenant import Tenant
from leadflow.models.tenant_channel import TenantChannel
from leadflow.models.tenant_settings import TenantSettings

__all__ = [
    "Tenant",
    "TenantSettings",
    "TenantChannel",
    "PipelineStage",
    "Lead",
    "Message",
    "SystemSettings",
    "SystemLog",
    "ScheduledFollowUp",
]
