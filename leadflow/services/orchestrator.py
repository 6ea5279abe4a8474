"""Inbound message pipeline: record, classify, reply, schedule follow-up."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from leadflow.logging_config import lead_logger
from leadflow.models import Lead, TenantSettings
from leadflow.models.enums import LogCategory, MessageDirection, MessageSource
from leadflow.services.classifier import (
    Classification,
    Classifier,
    KeywordClassifier,
    format_decision_notes,
    merge_attributes,
)
from leadflow.services.delivery_service import deliver_to_lead
from leadflow.services.followup_scheduler import FollowUpScheduler
from leadflow.services.gateway_service import GatewayClient
from leadflow.services.lead_service import (
    find_stage_by_type,
    get_lead_or_raise,
    get_system_settings,
    get_tenant_settings,
    touch_liveness,
)
from leadflow.services.message_service import save_message
from leadflow.services.night_window import is_quiet_now, parse_time, tenant_local_time
from leadflow.services.system_log_service import log_event

REPLY_GREETING = "Спасибо за сообщение! "
REPLY_SUGGEST_CALL = "Мы можем организовать для вас звонок и подробно всё рассказать. "
REPLY_PREPARE_INFO = "Сейчас подготовим для вас информацию по запросу. "
REPLY_ASK_QUESTIONS = "Подскажите, пожалуйста, какие детали для вас сейчас самые важные?"
REPLY_CLOSING = "Мы скоро свяжемся с вами."


@dataclass
class InboundResult:
    lead_id: UUID
    handled: bool
    reply: Optional[str] = None
    reason: Optional[str] = None
    follow_up_scheduled: bool = False


def compose_reply(settings: Optional[TenantSettings]) -> str:
    """Deterministic reply from the tenant's behaviour switches."""
    reply = REPLY_GREETING
    reply += REPLY_SUGGEST_CALL if settings and settings.suggest_call else REPLY_PREPARE_INFO
    reply += REPLY_ASK_QUESTIONS if settings and settings.ask_questions else REPLY_CLOSING
    return reply


def is_night_mode_active(settings: Optional[TenantSettings], now: datetime) -> bool:
    """Night mode with a configured window applies inside it; without one, always."""
    if not settings or not settings.night_mode_enabled:
        return False
    if parse_time(settings.night_mode_start) is None or parse_time(settings.night_mode_end) is None:
        return True
    return is_quiet_now(now, True, settings.night_mode_start, settings.night_mode_end, settings.timezone)


class ConversationOrchestrator:
    def __init__(
        self,
        scheduler: FollowUpScheduler,
        gateway: GatewayClient,
        classifier: Optional[Classifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.scheduler = scheduler
        self.gateway = gateway
        self.classifier = classifier or KeywordClassifier(clock=clock)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _apply_classification(self, db: Session, lead: Lead, classification: Classification) -> None:
        stage_name = lead.stage.name if lead.stage else None
        if classification.stage_hint is not None:
            stage = find_stage_by_type(db, lead.tenant_id, classification.stage_hint.value)
            if stage:
                lead.stage_id = stage.id
                lead.stage = stage
                stage_name = stage.name

        if classification.temperature is not None:
            lead.temperature = classification.temperature.value

        if classification.attribute_patch:
            lead.attributes = merge_attributes(lead.attributes, classification.attribute_patch)

        lead.notes = format_decision_notes(lead.temperature, stage_name, classification.reason)

    def handle_inbound(self, db: Session, tenant_id: UUID, lead_id: UUID, text: str) -> InboundResult:
        """Process one inbound message for a lead.

        Raises LeadNotFoundError if the lead does not belong to the tenant.
        Message records are committed before any reply is attempted.
        """
        lead = get_lead_or_raise(db, tenant_id, lead_id)
        log = lead_logger("orchestrator", tenant_id, lead.id)
        now = self._clock()

        if not get_system_settings(db).ai_global_enabled:
            save_message(db, lead.id, tenant_id, MessageSource.HUMAN, MessageDirection.IN, body=text)
            touch_liveness(lead, text, now, awaiting_reply=False)
            db.commit()
            self.scheduler.cancel(lead.id)
            log.info("Automation disabled globally, inbound recorded only")
            return InboundResult(lead_id=lead.id, handled=False, reason="automation_disabled")

        save_message(db, lead.id, tenant_id, MessageSource.HUMAN, MessageDirection.IN, body=text)
        db.commit()

        self.scheduler.cancel(lead.id)

        settings = get_tenant_settings(db, tenant_id)
        local_now = tenant_local_time(now, settings.timezone if settings else None)

        classification = self.classifier.classify(text, now=local_now)
        self._apply_classification(db, lead, classification)
        touch_liveness(lead, text, now, awaiting_reply=False)
        db.commit()
        log.info(
            "Inbound classified",
            context={
                "temperature": lead.temperature,
                "stage_hint": classification.stage_hint.value if classification.stage_hint else None,
                "reason": classification.reason,
            },
        )

        if is_night_mode_active(settings, now):
            night_message = settings.night_mode_message
            if night_message:
                save_message(db, lead.id, tenant_id, MessageSource.AI, MessageDirection.OUT, body=night_message)
                touch_liveness(lead, night_message, now, awaiting_reply=False)
            log_event(
                db,
                tenant_id,
                LogCategory.AI,
                f"Ночное сообщение отправлено лиду {lead.id}",
                {"leadId": lead.id},
            )
            db.commit()
            if night_message:
                deliver_to_lead(db, self.gateway, lead, night_message, tenant_settings=settings)
            return InboundResult(lead_id=lead.id, handled=True, reply=night_message, reason="night_mode")

        if not settings or not settings.ai_enabled or not lead.ai_active:
            log_event(
                db,
                tenant_id,
                LogCategory.AI,
                f"Входящее сообщение без AI-обработки (AI выключен) для лида {lead.id}",
                {"leadId": lead.id, "text": text},
            )
            db.commit()
            return InboundResult(lead_id=lead.id, handled=False, reason="ai_disabled")

        reply = compose_reply(settings)
        save_message(db, lead.id, tenant_id, MessageSource.AI, MessageDirection.OUT, body=reply)
        touch_liveness(lead, reply, now, awaiting_reply=False)
        log_event(
            db,
            tenant_id,
            LogCategory.AI,
            f"AI ответил на сообщение для лида {lead.id}",
            {
                "leadId": lead.id,
                "input": text,
                "reply": reply,
                "temperature": lead.temperature,
                "stageId": lead.stage_id,
            },
        )
        db.commit()
        deliver_to_lead(db, self.gateway, lead, reply, tenant_settings=settings)

        follow_up_scheduled = False
        if settings.follow_up_enabled and settings.follow_up_message:
            self.scheduler.schedule(
                tenant_id,
                lead.id,
                settings.follow_up_delay_minutes or 0,
                settings.follow_up_message,
            )
            follow_up_scheduled = True

        return InboundResult(
            lead_id=lead.id,
            handled=True,
            reply=reply,
            follow_up_scheduled=follow_up_scheduled,
        )
