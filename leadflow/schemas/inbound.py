from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class FakeIncomingRequest(BaseModel):
    tenant_id: UUID = Field(alias="tenantId")
    lead_id: UUID = Field(alias="leadId")
    text: str = Field(min_length=1)

    model_config = {"populate_by_name": True}


class InboundResponse(BaseModel):
    lead_id: UUID
    handled: bool
    reply: Optional[str] = None
    reason: Optional[str] = None
    follow_up_scheduled: bool = False
