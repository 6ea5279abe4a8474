from leadflow.schemas.handoff import HandoffRequest, HandoffResponse
from leadflow.schemas.inbound import FakeIncomingRequest, InboundResponse
from leadflow.schemas.webhook import WebhookResponse

__all__ = ["FakeIncomingRequest", "InboundResponse", "HandoffRequest", "HandoffResponse", "WebhookResponse"]
