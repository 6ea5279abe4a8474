from datetime import datetime, timezone
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from leadflow.models import Message
from leadflow.models.enums import MessageDirection, MessageSource
from leadflow.services.delivery_service import deliver_to_lead
from leadflow.services.gateway_service import GatewayClient
from leadflow.services.lead_service import get_lead_or_raise, touch_liveness
from leadflow.services.message_service import save_message
from leadflow.services.result import Result


def send_manager_message(
    db: Session,
    gateway: GatewayClient,
    tenant_id: UUID,
    lead_id: UUID,
    body: Optional[str],
    *,
    media_url: Optional[str] = None,
    media_kind: Optional[str] = None,
) -> Tuple[Message, Result[bool]]:
    """Record an operator's outbound message, then deliver it.

    The record is committed first; a failed delivery is reported, not raised.
    """
    lead = get_lead_or_raise(db, tenant_id, lead_id)
    text = (body or "").strip()

    message = save_message(
        db,
        lead.id,
        tenant_id,
        MessageSource.HUMAN,
        MessageDirection.OUT,
        body=text or None,
        media_url=media_url,
    )
    touch_liveness(lead, text or media_url, datetime.now(timezone.utc), awaiting_reply=False)
    db.commit()

    result = deliver_to_lead(db, gateway, lead, text, media_url=media_url, media_kind=media_kind)
    return message, result
