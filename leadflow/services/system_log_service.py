"""Operator-facing event log stored alongside the lead data."""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from leadflow.models import SystemLog
from leadflow.models.enums import LogCategory


def _jsonable(meta: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if meta is None:
        return None
    return {key: str(value) if isinstance(value, (UUID, datetime)) else value for key, value in meta.items()}


def log_event(
    db: Session,
    tenant_id: Optional[UUID],
    category: LogCategory,
    message: str,
    meta: Optional[dict[str, Any]] = None,
) -> SystemLog:
    entry = SystemLog(
        tenant_id=tenant_id,
        category=category.value,
        message=message,
        meta=_jsonable(meta),
        created_at=datetime.now(timezone.utc),
    )
    db.add(entry)
    db.flush()
    return entry
