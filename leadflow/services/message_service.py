from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from leadflow.models import Message
from leadflow.models.enums import MessageDirection, MessageSource


def save_message(
    db: Session,
    lead_id: UUID,
    tenant_id: UUID,
    source: MessageSource,
    direction: MessageDirection,
    body: Optional[str] = None,
    media_url: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> Message:
    """Save message to database."""
    message = Message(
        lead_id=lead_id,
        tenant_id=tenant_id,
        source=source.value,
        direction=direction.value,
        body=body,
        media_url=media_url,
        created_at=created_at or datetime.now(timezone.utc),
    )
    db.add(message)
    db.flush()
    return message
