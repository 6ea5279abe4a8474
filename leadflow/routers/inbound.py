from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from leadflow.database import get_db
from leadflow.dependencies import get_orchestrator, get_scheduler
from leadflow.schemas.handoff import HandoffRequest, HandoffResponse
from leadflow.schemas.inbound import FakeIncomingRequest, InboundResponse
from leadflow.services.followup_scheduler import FollowUpScheduler
from leadflow.services.handoff_service import HandoffError, release, take_over
from leadflow.services.lead_service import LeadNotFoundError
from leadflow.services.orchestrator import ConversationOrchestrator

router = APIRouter(tags=["inbound"])


@router.post("/ai/fake-incoming", response_model=InboundResponse)
def fake_incoming(
    request: FakeIncomingRequest,
    db: Session = Depends(get_db),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
):
    """Run the inbound pipeline for an existing lead without a provider."""
    try:
        result = orchestrator.handle_inbound(db, request.tenant_id, request.lead_id, request.text)
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    db.commit()

    return InboundResponse(
        lead_id=result.lead_id,
        handled=result.handled,
        reply=result.reply,
        reason=result.reason,
        follow_up_scheduled=result.follow_up_scheduled,
    )


@router.post("/tenants/{tenant_id}/leads/{lead_id}/handoff/take", response_model=HandoffResponse)
def take_lead(
    tenant_id: UUID,
    lead_id: UUID,
    request: HandoffRequest,
    db: Session = Depends(get_db),
    scheduler: FollowUpScheduler = Depends(get_scheduler),
):
    """Operator takes the conversation from the automation."""
    try:
        old_mode, new_mode = take_over(db, scheduler, tenant_id, lead_id, request.user_id)
        db.commit()
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except HandoffError as e:
        raise HTTPException(status_code=400, detail=e.message)

    return HandoffResponse(
        success=True,
        lead_id=lead_id,
        action="take",
        old_mode=old_mode,
        new_mode=new_mode,
        message="Operator took the conversation",
    )


@router.post("/tenants/{tenant_id}/leads/{lead_id}/handoff/release", response_model=HandoffResponse)
def release_lead(
    tenant_id: UUID,
    lead_id: UUID,
    request: HandoffRequest,
    db: Session = Depends(get_db),
):
    """Operator returns the conversation to the automation."""
    try:
        old_mode, new_mode = release(db, tenant_id, lead_id, request.user_id)
        db.commit()
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

    return HandoffResponse(
        success=True,
        lead_id=lead_id,
        action="release",
        old_mode=old_mode,
        new_mode=new_mode,
        message="Conversation returned to automation",
    )
