from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from leadflow.database import get_db
from leadflow.dependencies import get_gateway
from leadflow.schemas.message import ManagerMessageRequest, ManagerMessageResponse
from leadflow.services.gateway_service import GatewayClient
from leadflow.services.lead_service import LeadNotFoundError
from leadflow.services.manager_message_service import send_manager_message

router = APIRouter(tags=["messages"])


@router.post("/tenants/{tenant_id}/leads/{lead_id}/messages", response_model=ManagerMessageResponse)
def post_manager_message(
    tenant_id: UUID,
    lead_id: UUID,
    request: ManagerMessageRequest,
    db: Session = Depends(get_db),
    gateway: GatewayClient = Depends(get_gateway),
):
    """Operator writes to the lead. The message is stored even if delivery fails."""
    try:
        message, result = send_manager_message(
            db,
            gateway,
            tenant_id,
            lead_id,
            request.body,
            media_url=request.media_url,
            media_kind=request.media_kind,
        )
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

    return ManagerMessageResponse(
        success=True,
        message_id=message.id,
        delivered=result.ok,
        error_code=result.error_code,
    )
