from fastapi import Request

from leadflow.services.followup_scheduler import FollowUpScheduler
from leadflow.services.gateway_service import GatewayClient
from leadflow.services.orchestrator import ConversationOrchestrator


def get_orchestrator(request: Request) -> ConversationOrchestrator:
    return request.app.state.orchestrator


def get_scheduler(request: Request) -> FollowUpScheduler:
    return request.app.state.scheduler


def get_gateway(request: Request) -> GatewayClient:
    return request.app.state.gateway
