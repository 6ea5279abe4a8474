from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from leadflow.models import Lead, PipelineStage, SystemSettings, Tenant, TenantChannel, TenantSettings
from leadflow.models.system_settings import SYSTEM_SETTINGS_ID
from leadflow.models.tenant_channel import DEFAULT_CHANNEL_EXTERNAL_ID

PREVIEW_LENGTH = 120


class LeadNotFoundError(Exception):
    def __init__(self, tenant_id, lead_id):
        self.tenant_id = tenant_id
        self.lead_id = lead_id
        self.message = f"Lead {lead_id} not found for tenant {tenant_id}"
        super().__init__(self.message)


def get_lead(db: Session, tenant_id: UUID, lead_id: UUID) -> Optional[Lead]:
    return db.query(Lead).filter(Lead.id == lead_id, Lead.tenant_id == tenant_id).first()


def get_lead_or_raise(db: Session, tenant_id: UUID, lead_id: UUID) -> Lead:
    lead = get_lead(db, tenant_id, lead_id)
    if not lead:
        raise LeadNotFoundError(tenant_id, lead_id)
    return lead


def get_tenant(db: Session, tenant_id: UUID) -> Optional[Tenant]:
    return db.query(Tenant).filter(Tenant.id == tenant_id).first()


def get_tenant_settings(db: Session, tenant_id: UUID) -> Optional[TenantSettings]:
    return db.query(TenantSettings).filter(TenantSettings.tenant_id == tenant_id).first()


def get_settings_by_webhook_key(db: Session, key: str) -> Optional[TenantSettings]:
    return db.query(TenantSettings).filter(TenantSettings.webhook_key == key).first()


def get_system_settings(db: Session) -> SystemSettings:
    """Singleton row holding the automation kill switch; created on first use."""
    system = db.query(SystemSettings).filter(SystemSettings.id == SYSTEM_SETTINGS_ID).first()
    if not system:
        system = SystemSettings(id=SYSTEM_SETTINGS_ID, ai_global_enabled=True)
        db.add(system)
        db.flush()
    return system


def find_stage_by_type(db: Session, tenant_id: UUID, stage_type: str) -> Optional[PipelineStage]:
    return (
        db.query(PipelineStage)
        .filter(PipelineStage.tenant_id == tenant_id, PipelineStage.type == stage_type)
        .order_by(PipelineStage.position)
        .first()
    )


def get_first_stage(db: Session, tenant_id: UUID) -> Optional[PipelineStage]:
    return (
        db.query(PipelineStage)
        .filter(PipelineStage.tenant_id == tenant_id)
        .order_by(PipelineStage.position)
        .first()
    )


def find_channel(db: Session, tenant_id: UUID, external_id: Optional[str]) -> Optional[TenantChannel]:
    return (
        db.query(TenantChannel)
        .filter(
            TenantChannel.tenant_id == tenant_id,
            TenantChannel.external_id == (external_id or DEFAULT_CHANNEL_EXTERNAL_ID),
        )
        .first()
    )


def get_or_create_lead(
    db: Session,
    tenant_id: UUID,
    phone: str,
    *,
    channel_id: Optional[UUID] = None,
    name: Optional[str] = None,
) -> Optional[Lead]:
    """Find lead by phone (and channel when known) or create it in the first stage.

    Returns None when the tenant has no pipeline stages to place a new lead in.
    """
    query = db.query(Lead).filter(Lead.tenant_id == tenant_id, Lead.phone == phone)
    if channel_id is not None:
        query = query.filter(Lead.channel_id == channel_id)
    lead = query.first()

    if lead:
        if name and not lead.name:
            lead.name = name
            db.flush()
        return lead

    first_stage = get_first_stage(db, tenant_id)
    if not first_stage:
        return None

    lead = Lead(
        tenant_id=tenant_id,
        stage_id=first_stage.id,
        phone=phone,
        name=name,
        channel_id=channel_id,
        attributes={},
        created_at=datetime.now(timezone.utc),
    )
    db.add(lead)
    db.flush()
    return lead


def touch_liveness(lead: Lead, text: Optional[str], now: datetime, *, awaiting_reply: bool) -> None:
    """Refresh last-message fields. `awaiting_reply` marks an unanswered outbound."""
    lead.last_message_at = now
    lead.last_message_preview = text[:PREVIEW_LENGTH] if text else None
    lead.no_response_since = now if awaiting_reply else None


def resolve_instance_id(db: Session, lead: Lead, tenant_settings: Optional[TenantSettings]) -> Optional[str]:
    """Send from the same gateway instance the lead wrote to, else the tenant default."""
    instance_id = tenant_settings.gateway_instance_id if tenant_settings else None
    if lead.channel_id:
        channel = db.query(TenantChannel).filter(TenantChannel.id == lead.channel_id).first()
        if channel and channel.external_id != DEFAULT_CHANNEL_EXTERNAL_ID:
            instance_id = channel.external_id
    return instance_id
