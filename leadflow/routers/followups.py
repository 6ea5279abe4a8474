from fastapi import APIRouter, Depends

from leadflow.dependencies import get_scheduler
from leadflow.schemas.followup import PendingFollowUpItem, PendingFollowUpsResponse
from leadflow.services.followup_scheduler import FollowUpScheduler

router = APIRouter(prefix="/followups", tags=["followups"])


@router.get("/pending", response_model=PendingFollowUpsResponse)
def list_pending(scheduler: FollowUpScheduler = Depends(get_scheduler)):
    items = [
        PendingFollowUpItem(
            tenant_id=job.tenant_id,
            lead_id=job.lead_id,
            fire_at=job.fire_at,
            text=job.text,
            state=job.state.value,
        )
        for job in scheduler.pending_items()
    ]
    return PendingFollowUpsResponse(count=len(items), items=items)
