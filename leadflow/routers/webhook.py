from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from starlette.requests import ClientDisconnect
from sqlalchemy.orm import Session

from leadflow.database import get_db
from leadflow.dependencies import get_orchestrator
from leadflow.logging_config import get_logger
from leadflow.models.enums import LogCategory
from leadflow.schemas.webhook import WebhookResponse
from leadflow.services.lead_service import (
    find_channel,
    get_or_create_lead,
    get_settings_by_webhook_key,
    get_tenant,
)
from leadflow.services.orchestrator import ConversationOrchestrator
from leadflow.services.system_log_service import log_event
from leadflow.services.webhook_normalizer import normalize_webhook

logger = get_logger("webhook")

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


async def _read_body(request: Request) -> Any:
    """JSON body, or {} when the provider sent nothing usable."""
    try:
        return await request.json()
    except ClientDisconnect:
        logger.info("Webhook client disconnected during read")
        return {}
    except ValueError as exc:
        raw = await request.body()
        if raw and raw.strip():
            logger.warning(
                "Webhook payload is not valid JSON",
                extra={"context": {"error": str(exc), "body_preview": raw[:200].decode("utf-8", "ignore")}},
            )
        return {}


def _process_webhook(
    db: Session,
    orchestrator: ConversationOrchestrator,
    provider: str,
    tenant_id: UUID,
    body: Any,
    query: dict[str, str],
) -> WebhookResponse:
    tenant = get_tenant(db, tenant_id)
    if not tenant:
        logger.warning(f"Webhook for unknown tenant: provider={provider}, tenant_id={tenant_id}")
        return WebhookResponse(received=False, error=f"Tenant {tenant_id} not found")

    inbound = normalize_webhook(body, query)
    if not inbound:
        body_keys = sorted(body.keys()) if isinstance(body, dict) else []
        logger.info(
            "Webhook payload not recognised",
            extra={"context": {"provider": provider, "tenant_id": str(tenant_id), "body_keys": body_keys}},
        )
        log_event(
            db,
            tenant_id,
            LogCategory.WHATSAPP,
            f"Не удалось разобрать входящий webhook от {provider}",
            {"provider": provider, "bodyKeys": body_keys, "queryKeys": sorted(query.keys())},
        )
        db.commit()
        return WebhookResponse(
            received=True,
            tenant_id=tenant_id,
            reply=None,
            debug={"reason": "parse_failed", "bodyKeys": body_keys, "queryKeys": sorted(query.keys())},
        )

    channel = find_channel(db, tenant_id, inbound.channel_external_id)
    lead = get_or_create_lead(
        db,
        tenant_id,
        inbound.phone,
        channel_id=channel.id if channel else None,
        name=inbound.name,
    )
    if not lead:
        logger.warning(f"Tenant {tenant_id} has no pipeline stages, inbound from {inbound.phone} dropped")
        db.commit()
        return WebhookResponse(
            received=True,
            tenant_id=tenant_id,
            reply=None,
            debug={"reason": "no_pipeline_stages"},
        )
    db.commit()

    result = orchestrator.handle_inbound(db, tenant_id, lead.id, inbound.text)
    db.commit()

    return WebhookResponse(
        received=True,
        tenant_id=tenant_id,
        lead_id=lead.id,
        handled=result.handled,
        reply=result.reply,
        debug={"reason": result.reason} if result.reason else None,
    )


@router.post("/{provider}/{tenant_id}", response_model=WebhookResponse)
async def receive_webhook(
    provider: str,
    tenant_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
):
    """Inbound message from a WhatsApp provider. Never errors back to the provider."""
    body = await _read_body(request)
    query = dict(request.query_params)
    logger.info(f"Webhook received: provider={provider}, tenant_id={tenant_id}")
    return await run_in_threadpool(_process_webhook, db, orchestrator, provider, tenant_id, body, query)


@router.get("/{provider}/{tenant_id}", response_model=WebhookResponse)
async def receive_webhook_query(
    provider: str,
    tenant_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
):
    """Providers that deliver inbound messages as GET query parameters."""
    query = dict(request.query_params)
    return await run_in_threadpool(_process_webhook, db, orchestrator, provider, tenant_id, {}, query)


@router.post("/{provider}", response_model=WebhookResponse)
async def receive_webhook_by_key(
    provider: str,
    request: Request,
    key: Optional[str] = None,
    db: Session = Depends(get_db),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
):
    """Inbound webhook where the tenant is identified by its webhook key."""
    tenant_settings = get_settings_by_webhook_key(db, key) if key else None
    if not tenant_settings:
        logger.warning(f"Webhook with unknown key: provider={provider}")
        return WebhookResponse(received=False, error="Unknown webhook key")

    body = await _read_body(request)
    query = {k: v for k, v in request.query_params.items() if k != "key"}
    return await run_in_threadpool(
        _process_webhook, db, orchestrator, provider, tenant_settings.tenant_id, body, query
    )
