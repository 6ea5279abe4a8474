from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class WebhookResponse(BaseModel):
    received: bool
    tenant_id: Optional[UUID] = Field(default=None, alias="tenantId")
    lead_id: Optional[UUID] = Field(default=None, alias="leadId")
    handled: Optional[bool] = None
    reply: Optional[str] = None
    error: Optional[str] = None
    debug: Optional[dict[str, Any]] = None

    model_config = {"populate_by_name": True}
