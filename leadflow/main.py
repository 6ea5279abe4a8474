import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from leadflow.config import is_env_enabled, settings
from leadflow.database import SessionLocal
from leadflow.logging_config import get_logger, setup_logging
from leadflow.routers import followups, inbound, messages, webhook
from leadflow.services.followup_scheduler import FollowUpScheduler, SqlFollowUpStore
from leadflow.services.gateway_service import GatewayClient
from leadflow.services.orchestrator import ConversationOrchestrator

setup_logging(settings.log_level)

logger = get_logger("main")

app = FastAPI(
    title="LeadFlow API",
    description="WhatsApp lead conversation orchestrator",
    version="0.1.0",
)

cors_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(webhook.router)
app.include_router(inbound.router)
app.include_router(messages.router)
app.include_router(followups.router)


def build_scheduler(gateway: GatewayClient) -> FollowUpScheduler:
    store = SqlFollowUpStore(SessionLocal) if settings.followup_persistence_enabled else None
    return FollowUpScheduler(
        SessionLocal,
        gateway,
        store=store,
        restore_grace_seconds=settings.followup_restore_grace_seconds,
    )


app.state.gateway = GatewayClient()
app.state.scheduler = build_scheduler(app.state.gateway)
app.state.orchestrator = ConversationOrchestrator(app.state.scheduler, app.state.gateway)


def _is_restore_enabled() -> bool:
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return False
    return is_env_enabled(os.environ.get("FOLLOWUP_RESTORE_ON_STARTUP"), default=settings.followup_restore_on_startup)


@app.on_event("startup")
def restore_follow_ups() -> None:
    if not _is_restore_enabled():
        return
    restored = app.state.scheduler.restore()
    logger.info("Follow-up restore finished", extra={"context": {"restored": restored}})


@app.on_event("shutdown")
def stop_follow_ups() -> None:
    app.state.scheduler.shutdown()


@app.get("/health")
async def health():
    return {"status": "ok"}
