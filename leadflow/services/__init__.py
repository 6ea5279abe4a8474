from leadflow.services.classifier import Classification, KeywordClassifier, extract_attributes, merge_attributes
from leadflow.services.followup_scheduler import FollowUpScheduler, PendingFollowUp
from leadflow.services.followup_state import FollowUpState, InvalidTransitionError
from leadflow.services.gateway_service import GatewayClient
from leadflow.services.night_window import in_window, minutes_until_end
from leadflow.services.orchestrator import ConversationOrchestrator, InboundResult
from leadflow.services.result import DeliveryErrorCode, Result
from leadflow.services.webhook_normalizer import InboundMessage, normalize_webhook
