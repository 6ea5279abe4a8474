from typing import Optional

from sqlalchemy.orm import Session

from leadflow.logging_config import get_logger
from leadflow.models import Lead, TenantSettings
from leadflow.services.gateway_service import GatewayClient
from leadflow.services.lead_service import get_tenant_settings, resolve_instance_id
from leadflow.services.result import Result

logger = get_logger("delivery_service")


def deliver_to_lead(
    db: Session,
    gateway: GatewayClient,
    lead: Lead,
    text: str,
    *,
    tenant_settings: Optional[TenantSettings] = None,
    media_url: Optional[str] = None,
    media_kind: Optional[str] = None,
) -> Result[bool]:
    """Send an already-persisted outbound message to the lead's WhatsApp."""
    settings = tenant_settings or get_tenant_settings(db, lead.tenant_id)
    token = settings.gateway_api_token if settings else None
    instance_id = resolve_instance_id(db, lead, settings)

    if media_url:
        result = gateway.send_media(token, instance_id, lead.phone, media_url, media_kind or "document")
    else:
        result = gateway.send_text(token, instance_id, lead.phone, text)

    context = {"tenant_id": str(lead.tenant_id), "lead_id": str(lead.id)}
    if result.ok:
        logger.info("Delivered via gateway", extra={"context": context})
    elif result.is_config_missing():
        logger.warning(f"Delivery skipped: {result.error}", extra={"context": context})
    else:
        logger.warning(
            f"Delivery failed: {result.error}",
            extra={"context": {**context, "error_code": result.error_code}},
        )
    return result
