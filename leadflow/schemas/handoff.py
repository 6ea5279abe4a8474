from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel


class HandoffRequest(BaseModel):
    user_id: str


class HandoffResponse(BaseModel):
    success: bool
    lead_id: UUID
    action: Literal["take", "release"]
    old_mode: str
    new_mode: str
    message: Optional[str] = None
