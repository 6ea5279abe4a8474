"""Per-lead deferred follow-up messages.

At most one follow-up is armed per lead. Arming replaces, never stacks.
Timer bookkeeping happens under locks and never does network I/O; only the
fire path talks to the database and the gateway.
"""

import threading
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Optional, Protocol
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from leadflow.logging_config import get_logger
from leadflow.models import ScheduledFollowUp
from leadflow.models.enums import LogCategory, MessageDirection, MessageSource, StageType
from leadflow.services.classifier import has_scheduled_call
from leadflow.services.delivery_service import deliver_to_lead
from leadflow.services.followup_state import FollowUpState, arm, cancel, start_firing
from leadflow.services.gateway_service import GatewayClient
from leadflow.services.lead_service import get_lead, get_tenant_settings, touch_liveness
from leadflow.services.message_service import save_message
from leadflow.services.night_window import in_window, minutes_until_end, tenant_local_time
from leadflow.services.system_log_service import log_event

logger = get_logger("followup_scheduler")


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def thread_timer(seconds: float, callback: Callable[[], None]) -> TimerHandle:
    timer = threading.Timer(seconds, callback)
    timer.daemon = True
    timer.start()
    return timer


def _ensure_timezone(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class FireOutcome(str, Enum):
    SENT = "sent"
    DELIVERY_FAILED = "delivery_failed"
    DEFERRED = "deferred"
    SKIPPED_LEAD_MISSING = "skipped_lead_missing"
    SKIPPED_AI_INACTIVE = "skipped_ai_inactive"
    SKIPPED_WANTS_CALL = "skipped_wants_call"
    SKIPPED_CALL_SCHEDULED = "skipped_call_scheduled"
    STALE = "stale"


@dataclass
class PendingFollowUp:
    tenant_id: UUID
    lead_id: UUID
    text: str
    fire_at: datetime
    delay_minutes: float
    state: FollowUpState = FollowUpState.IDLE
    timer: Any = field(default=None, repr=False, compare=False)


class SqlFollowUpStore:
    """Keeps a durable copy of armed follow-ups so a restart can re-arm them."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def save(self, job: PendingFollowUp) -> None:
        db = self._session_factory()
        try:
            row = db.get(ScheduledFollowUp, job.lead_id)
            if row is None:
                row = ScheduledFollowUp(lead_id=job.lead_id)
                db.add(row)
            row.tenant_id = job.tenant_id
            row.fire_at = job.fire_at
            row.message_text = job.text
            db.commit()
        finally:
            db.close()

    def delete(self, lead_id: UUID) -> None:
        db = self._session_factory()
        try:
            db.query(ScheduledFollowUp).filter(ScheduledFollowUp.lead_id == lead_id).delete()
            db.commit()
        finally:
            db.close()

    def load_all(self) -> list[PendingFollowUp]:
        db = self._session_factory()
        try:
            rows = db.query(ScheduledFollowUp).order_by(ScheduledFollowUp.fire_at).all()
            return [
                PendingFollowUp(
                    tenant_id=row.tenant_id,
                    lead_id=row.lead_id,
                    text=row.message_text,
                    fire_at=_ensure_timezone(row.fire_at),
                    delay_minutes=0,
                )
                for row in rows
            ]
        finally:
            db.close()


class FollowUpScheduler:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        gateway: GatewayClient,
        *,
        store: Optional[SqlFollowUpStore] = None,
        timer_factory: TimerFactory = thread_timer,
        clock: Optional[Callable[[], datetime]] = None,
        restore_grace_seconds: float = 5.0,
    ):
        self._session_factory = session_factory
        self._gateway = gateway
        self._store = store
        self._timer_factory = timer_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._restore_grace_seconds = restore_grace_seconds

        self._timers: dict[UUID, PendingFollowUp] = {}
        self._registry_lock = threading.Lock()
        self._key_locks: "weakref.WeakValueDictionary[UUID, threading.RLock]" = weakref.WeakValueDictionary()

    # -- registry -----------------------------------------------------------

    def _key_lock(self, lead_id: UUID) -> threading.RLock:
        with self._registry_lock:
            lock = self._key_locks.get(lead_id)
            if lock is None:
                lock = threading.RLock()
                self._key_locks[lead_id] = lock
            return lock

    def pending(self, lead_id: UUID) -> Optional[PendingFollowUp]:
        with self._registry_lock:
            return self._timers.get(lead_id)

    def pending_items(self) -> list[PendingFollowUp]:
        with self._registry_lock:
            return sorted(self._timers.values(), key=lambda job: job.fire_at)

    @property
    def pending_count(self) -> int:
        with self._registry_lock:
            return len(self._timers)

    def _arm_locked(self, job: PendingFollowUp, seconds: float) -> None:
        job.state = arm(job.state)
        job.timer = self._timer_factory(seconds, lambda: self._on_timer(job))
        with self._registry_lock:
            self._timers[job.lead_id] = job

    def _cancel_locked(self, lead_id: UUID) -> bool:
        with self._registry_lock:
            job = self._timers.pop(lead_id, None)
        if job is None:
            return False
        job.timer.cancel()
        job.state = cancel(job.state)
        self._unpersist(lead_id)
        return True

    def _persist(self, job: PendingFollowUp) -> None:
        if not self._store:
            return
        try:
            self._store.save(job)
        except SQLAlchemyError as e:
            logger.error(f"Failed to persist follow-up for lead {job.lead_id}: {e}")

    def _unpersist(self, lead_id: UUID) -> None:
        if not self._store:
            return
        try:
            self._store.delete(lead_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete persisted follow-up for lead {lead_id}: {e}")

    # -- public API ---------------------------------------------------------

    def schedule(self, tenant_id: UUID, lead_id: UUID, delay_minutes: float, text: str) -> Optional[PendingFollowUp]:
        """Arm a follow-up for the lead, replacing any existing one.

        A non-positive delay fires right away in the caller's thread.
        """
        now = _ensure_timezone(self._clock())
        job = PendingFollowUp(
            tenant_id=tenant_id,
            lead_id=lead_id,
            text=text,
            fire_at=now + timedelta(minutes=max(delay_minutes, 0)),
            delay_minutes=delay_minutes,
        )

        with self._key_lock(lead_id):
            if self._cancel_locked(lead_id):
                logger.info(f"Replaced follow-up for lead {lead_id}")
            if delay_minutes > 0:
                self._arm_locked(job, delay_minutes * 60)
                self._persist(job)
                logger.info(f"Scheduled follow-up for lead {lead_id} in {delay_minutes} minutes")
                return job

        job.state = start_firing(arm(job.state))
        self._run_fire(job)
        return None

    def cancel(self, lead_id: UUID) -> bool:
        """Drop the lead's armed follow-up. Returns False when there was none."""
        with self._key_lock(lead_id):
            cancelled = self._cancel_locked(lead_id)
        if cancelled:
            logger.info(f"Cancelled follow-up for lead {lead_id}")
        return cancelled

    def restore(self) -> int:
        """Re-arm follow-ups persisted before a restart."""
        if not self._store:
            return 0
        now = _ensure_timezone(self._clock())
        restored = 0
        for job in self._store.load_all():
            remaining = (job.fire_at - now).total_seconds()
            seconds = max(remaining, self._restore_grace_seconds)
            job.delay_minutes = seconds / 60
            with self._key_lock(job.lead_id):
                if self.pending(job.lead_id) is not None:
                    continue
                self._arm_locked(job, seconds)
            restored += 1
        if restored:
            logger.info(f"Restored {restored} follow-ups from storage")
        return restored

    def shutdown(self) -> None:
        """Stop all in-memory timers. Persisted rows are kept for the next start."""
        with self._registry_lock:
            jobs = list(self._timers.values())
            self._timers.clear()
        for job in jobs:
            job.timer.cancel()
        if jobs:
            logger.info(f"Stopped {len(jobs)} follow-up timers")

    # -- firing -------------------------------------------------------------

    def _on_timer(self, job: PendingFollowUp) -> Optional[FireOutcome]:
        with self._key_lock(job.lead_id):
            with self._registry_lock:
                if self._timers.get(job.lead_id) is not job:
                    return FireOutcome.STALE
                del self._timers[job.lead_id]
            job.state = start_firing(job.state)
            self._unpersist(job.lead_id)

        return self._run_fire(job)

    def _run_fire(self, job: PendingFollowUp) -> Optional[FireOutcome]:
        try:
            return self._fire(job)
        except Exception as exc:
            logger.error(
                "Failed to send follow-up",
                exc_info=True,
                extra={"context": {"lead_id": str(job.lead_id), "error": str(exc)}},
            )
            return None

    def _fire(self, job: PendingFollowUp) -> FireOutcome:
        db = self._session_factory()
        try:
            lead = get_lead(db, job.tenant_id, job.lead_id)
            if not lead:
                return FireOutcome.SKIPPED_LEAD_MISSING
            if not lead.ai_active:
                logger.info(f"Follow-up skipped, lead {lead.id} handled by a human")
                return FireOutcome.SKIPPED_AI_INACTIVE
            if lead.stage is not None and lead.stage.type == StageType.WANTS_CALL.value:
                logger.info(f"Follow-up skipped, lead {lead.id} wants a call")
                return FireOutcome.SKIPPED_WANTS_CALL
            if has_scheduled_call(lead.attributes):
                logger.info(f"Follow-up skipped, lead {lead.id} has a call scheduled")
                return FireOutcome.SKIPPED_CALL_SCHEDULED

            settings = get_tenant_settings(db, job.tenant_id)
            now = self._clock()

            if settings and settings.night_mode_enabled:
                local_now = tenant_local_time(now, settings.timezone)
                if in_window(local_now, settings.night_mode_start, settings.night_mode_end):
                    minutes = minutes_until_end(local_now, settings.night_mode_end)
                    if minutes:
                        logger.info(f"Follow-up for lead {lead.id} deferred to end of quiet hours in {minutes} minutes")
                        log_event(
                            db,
                            job.tenant_id,
                            LogCategory.AI,
                            f"Follow-up перенесён из ночного времени для лида {lead.id}",
                            {"leadId": lead.id, "delayMinutes": minutes},
                        )
                        db.commit()
                        self.schedule(job.tenant_id, job.lead_id, minutes, job.text)
                        return FireOutcome.DEFERRED

            save_message(db, lead.id, lead.tenant_id, MessageSource.AI, MessageDirection.OUT, body=job.text)
            db.commit()

            result = deliver_to_lead(db, self._gateway, lead, job.text, tenant_settings=settings)
            if not result.ok:
                log_event(
                    db,
                    job.tenant_id,
                    LogCategory.AI,
                    f"Follow-up не отправлен в WhatsApp для лида {lead.id}",
                    {"leadId": lead.id, "error": result.error, "errorCode": result.error_code},
                )

            touch_liveness(lead, job.text, now, awaiting_reply=True)
            log_event(
                db,
                job.tenant_id,
                LogCategory.AI,
                f"Отправлен follow-up для лида {lead.id}",
                {"leadId": lead.id, "text": job.text},
            )
            db.commit()
            return FireOutcome.SENT if result.ok else FireOutcome.DELIVERY_FAILED
        finally:
            db.close()
