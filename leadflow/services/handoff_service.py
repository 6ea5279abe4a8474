from enum import Enum
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from leadflow.models import Lead
from leadflow.models.enums import LogCategory
from leadflow.services.followup_scheduler import FollowUpScheduler
from leadflow.services.lead_service import get_lead_or_raise
from leadflow.services.system_log_service import log_event


class ConversationMode(str, Enum):
    AI = "ai"
    HUMAN = "human"


class HandoffError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def conversation_mode(lead: Lead) -> ConversationMode:
    return ConversationMode.AI if lead.ai_active else ConversationMode.HUMAN


def take_over(
    db: Session,
    scheduler: FollowUpScheduler,
    tenant_id: UUID,
    lead_id: UUID,
    user_id: str,
) -> Tuple[str, str]:
    """Operator takes the conversation from the automation."""
    lead = get_lead_or_raise(db, tenant_id, lead_id)
    old_mode = conversation_mode(lead)

    if old_mode == ConversationMode.HUMAN and lead.assigned_user_id and lead.assigned_user_id != user_id:
        raise HandoffError(f"Lead is already handled by operator '{lead.assigned_user_id}'")

    lead.ai_active = False
    lead.assigned_user_id = user_id
    scheduler.cancel(lead.id)

    log_event(
        db,
        tenant_id,
        LogCategory.AI,
        f"Диалог забран менеджером {user_id} по лиду {lead.id}",
        {"leadId": lead.id, "userId": user_id},
    )
    return old_mode.value, ConversationMode.HUMAN.value


def release(
    db: Session,
    tenant_id: UUID,
    lead_id: UUID,
    user_id: Optional[str] = None,
) -> Tuple[str, str]:
    """Operator hands the conversation back to the automation."""
    lead = get_lead_or_raise(db, tenant_id, lead_id)
    old_mode = conversation_mode(lead)

    lead.ai_active = True

    log_event(
        db,
        tenant_id,
        LogCategory.AI,
        f"Диалог возвращён AI по лиду {lead.id}",
        {"leadId": lead.id, "userId": user_id},
    )
    return old_mode.value, ConversationMode.AI.value
