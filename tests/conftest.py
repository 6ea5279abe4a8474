import os
from datetime import datetime

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from leadflow.database import Base
from leadflow.models import Lead, PipelineStage, SystemSettings, Tenant, TenantChannel, TenantSettings
from leadflow.models.system_settings import SYSTEM_SETTINGS_ID
from leadflow.services.followup_scheduler import FollowUpScheduler
from leadflow.services.orchestrator import ConversationOrchestrator
from leadflow.services.result import DeliveryErrorCode, Result

NOW = datetime(2026, 3, 10, 14, 0)

STAGES = [
    ("Новый", "new"),
    ("В работе", "in_progress"),
    ("Полные данные", "full_data"),
    ("Хочет звонок", "wants_call"),
    ("Отказ", "refused"),
]


class FakeTimer:
    def __init__(self, seconds, callback):
        self.seconds = seconds
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        return self.callback()


class FakeTimerFactory:
    """Collects timers instead of starting threads; tests fire them by hand."""

    def __init__(self):
        self.timers = []

    def __call__(self, seconds, callback):
        timer = FakeTimer(seconds, callback)
        self.timers.append(timer)
        return timer

    @property
    def last(self):
        return self.timers[-1]


class FakeGateway:
    def __init__(self, result=None):
        self.result = result or Result.success(True)
        self.sent = []

    def send_text(self, credential, channel, phone, body):
        self.sent.append({"kind": "text", "token": credential, "instance_id": channel, "phone": phone, "body": body})
        return self.result

    def send_media(self, credential, channel, phone, media_url, kind):
        self.sent.append(
            {"kind": kind, "token": credential, "instance_id": channel, "phone": phone, "url": media_url}
        )
        return self.result


class Clock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def timers():
    return FakeTimerFactory()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def failing_gateway():
    return FakeGateway(Result.failure("Gateway reported failure", DeliveryErrorCode.GATEWAY_REJECTED))


@pytest.fixture
def scheduler(session_factory, gateway, timers, clock):
    return FollowUpScheduler(session_factory, gateway, timer_factory=timers, clock=clock)


@pytest.fixture
def orchestrator(scheduler, gateway, clock):
    return ConversationOrchestrator(scheduler, gateway, clock=clock)


@pytest.fixture
def tenant(db):
    tenant = Tenant(name="Дом Мастер")
    db.add(tenant)
    db.flush()
    db.add(
        TenantSettings(
            tenant_id=tenant.id,
            gateway_api_token="token-123",
            gateway_instance_id="instance-1",
            webhook_key="hook-key",
            ai_enabled=True,
            follow_up_enabled=False,
        )
    )
    for position, (name, stage_type) in enumerate(STAGES):
        db.add(PipelineStage(tenant_id=tenant.id, name=name, type=stage_type, position=position))
    db.add(SystemSettings(id=SYSTEM_SETTINGS_ID, ai_global_enabled=True))
    db.commit()
    return tenant


@pytest.fixture
def tenant_settings(db, tenant):
    return db.query(TenantSettings).filter(TenantSettings.tenant_id == tenant.id).one()


@pytest.fixture
def lead(db, tenant):
    first_stage = db.query(PipelineStage).filter(PipelineStage.tenant_id == tenant.id, PipelineStage.type == "new").one()
    lead = Lead(tenant_id=tenant.id, stage_id=first_stage.id, phone="77011234567", name="Айгуль", attributes={})
    db.add(lead)
    db.commit()
    return lead


@pytest.fixture
def channel(db, tenant):
    channel = TenantChannel(tenant_id=tenant.id, name="Второй номер", external_id="instance-2")
    db.add(channel)
    db.commit()
    return channel
