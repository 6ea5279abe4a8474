from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, model_validator


class ManagerMessageRequest(BaseModel):
    body: Optional[str] = None
    media_url: Optional[str] = None
    media_kind: Optional[Literal["ptt", "image", "document"]] = None

    @model_validator(mode="after")
    def _require_content(self):
        if not (self.body and self.body.strip()) and not self.media_url:
            raise ValueError("Either body or media_url is required")
        return self


class ManagerMessageResponse(BaseModel):
    success: bool
    message_id: UUID
    delivered: bool
    error_code: Optional[str] = None
