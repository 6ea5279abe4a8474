from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class PendingFollowUpItem(BaseModel):
    tenant_id: UUID
    lead_id: UUID
    fire_at: datetime
    text: str
    state: str


class PendingFollowUpsResponse(BaseModel):
    count: int
    items: list[PendingFollowUpItem]
