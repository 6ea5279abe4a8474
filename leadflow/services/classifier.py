"""Deterministic keyword classifier for inbound lead messages.

Rules are checked in priority order: refusal, price inquiry, call request.
Attribute extraction runs independently of the rules and only ever adds keys.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Protocol

from leadflow.models.enums import LeadTemperature, StageType

NO_RULE_REASON = "сообщение не попало ни под одно правило"

REFUSAL_PHRASES = ("не интересно", "отказ", "не актуально")
PRICE_PHRASES = ("цена", "стоимость", "сколько")
CALL_PHRASES = ("звон",)  # позвоните, созвон, звонок

CITY_GAZETTEER = (
    ("алматы", "Алматы"),
    ("астана", "Астана"),
    ("нур-султан", "Астана"),
)

DIMENSION_PATTERNS = (
    re.compile(r"(\d+)\s*[xх×*]\s*(\d+)"),
    re.compile(r"(\d+)\s*на\s*(\d+)"),
)
WINDOWS_PATTERN = re.compile(r"(\d+)\s*окн")
DOORS_PATTERN = re.compile(r"(\d+)\s*двер")

HALF_HOUR_PATTERNS = (
    re.compile(r"(через\s+)?(полчаса|пол\s+часа|жарты?\s+сагат|сагат\s+кейн|полчаса\s+кейн)"),
    re.compile(r"бугин\s+жарт\s+сагат"),
)
HOUR_PATTERN = re.compile(r"через\s+(1\s+)?час[ау]?\b|\b(1\s+)?час[ау]?\s+кейн")
MINUTES_PATTERN = re.compile(r"через\s+(\d+)\s*м(ин|инут)")
TOMORROW_PATTERN = re.compile(r"завтра\s+в\s+(\d{1,2})(?::(\d{2}))?")

SCHEDULED_CALL_KEYS = ("suggestedCallAt", "suggestedCallNote")


@dataclass
class Classification:
    temperature: Optional[LeadTemperature]
    stage_hint: Optional[StageType]
    attribute_patch: dict[str, Any] = field(default_factory=dict)
    reason: str = NO_RULE_REASON

    @property
    def matched(self) -> bool:
        return self.temperature is not None


class Classifier(Protocol):
    """Interpretation engine contract; the orchestrator depends only on this."""

    def classify(self, text: str, now: Optional[datetime] = None) -> Classification: ...


def _contains_any(text: str, phrases: tuple[str, ...]) -> bool:
    return any(phrase in text for phrase in phrases)


def extract_city(lower: str) -> Optional[str]:
    for needle, city in CITY_GAZETTEER:
        if needle in lower:
            return city
    return None


def extract_dimensions(lower: str) -> Optional[dict[str, int]]:
    for pattern in DIMENSION_PATTERNS:
        match = pattern.search(lower)
        if match:
            return {"length": int(match.group(1)), "width": int(match.group(2))}
    return None


def extract_foundation(lower: str) -> Optional[str]:
    if "фундамент" not in lower:
        return None
    if "без фунда" in lower or "нет фунда" in lower:
        return "нет"
    if "есть фунда" in lower or "на фунда" in lower:
        return "есть"
    return "уточнить"


def parse_suggested_call_time(text: str, now: datetime) -> Optional[dict[str, str]]:
    """Find "call me back at ..." markers. Returns {"at": iso, "note": label} or None."""
    lower = text.lower().strip()
    at: Optional[datetime] = None
    note = ""

    if any(pattern.search(lower) for pattern in HALF_HOUR_PATTERNS):
        at = now + timedelta(minutes=30)
        note = "Через 30 мин"
    elif HOUR_PATTERN.search(lower):
        at = now + timedelta(hours=1)
        note = "Через 1 час"
    else:
        minutes_match = MINUTES_PATTERN.search(lower)
        if minutes_match:
            minutes = int(minutes_match.group(1))
            if 0 < minutes < 1440:
                at = now + timedelta(minutes=minutes)
                note = f"Через {minutes} мин"

    if at is None:
        tomorrow_match = TOMORROW_PATTERN.search(lower)
        if tomorrow_match:
            hour = int(tomorrow_match.group(1))
            minute = int(tomorrow_match.group(2)) if tomorrow_match.group(2) else 0
            if 0 <= hour <= 23 and 0 <= minute <= 59:
                at = (now + timedelta(days=1)).replace(hour=hour, minute=minute, second=0, microsecond=0)
                note = f"Завтра в {hour}:{minute:02d}"

    if at is None:
        return None
    return {"at": at.isoformat(), "note": note}


def extract_attributes(text: str, now: Optional[datetime] = None) -> dict[str, Any]:
    """Structured attributes found in `text`. Empty dict when nothing matched."""
    lower = text.lower()
    patch: dict[str, Any] = {}

    city = extract_city(lower)
    if city:
        patch["city"] = city

    dimensions = extract_dimensions(lower)
    if dimensions:
        patch["dimensions"] = dimensions

    foundation = extract_foundation(lower)
    if foundation:
        patch["foundation"] = foundation

    windows_match = WINDOWS_PATTERN.search(lower)
    if windows_match:
        patch["windowsCount"] = int(windows_match.group(1))

    doors_match = DOORS_PATTERN.search(lower)
    if doors_match:
        patch["doorsCount"] = int(doors_match.group(1))

    call_time = parse_suggested_call_time(text, now or datetime.now(timezone.utc))
    if call_time:
        patch["suggestedCallAt"] = call_time["at"]
        patch["suggestedCallNote"] = call_time["note"]

    return patch


def merge_attributes(current: Optional[dict], patch: dict[str, Any]) -> dict[str, Any]:
    """Overlay `patch` on `current`; keys absent from the patch are kept."""
    base = dict(current) if isinstance(current, dict) else {}
    base.update(patch)
    return base


def has_scheduled_call(attributes: Optional[dict]) -> bool:
    if not isinstance(attributes, dict):
        return False
    return any(attributes.get(key) is not None for key in SCHEDULED_CALL_KEYS)


class KeywordClassifier:
    """Rule-based stand-in for an interpretation engine."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def classify(self, text: str, now: Optional[datetime] = None) -> Classification:
        """`now` is the lead's wall clock; call-time markers like "завтра в 10" resolve against it."""
        lower = (text or "").lower()
        patch = extract_attributes(text or "", now=now or self._clock())

        if _contains_any(lower, REFUSAL_PHRASES):
            return Classification(
                temperature=LeadTemperature.COLD,
                stage_hint=StageType.REFUSED,
                attribute_patch=patch,
                reason='клиент явно отказался ("не интересно", "отказ", "не актуально")',
            )

        if _contains_any(lower, PRICE_PHRASES):
            result = Classification(
                temperature=LeadTemperature.WARM,
                stage_hint=StageType.IN_PROGRESS,
                attribute_patch=patch,
                reason="клиент уточняет условия/цену",
            )
            if "city" in patch and "dimensions" in patch:
                result.stage_hint = StageType.FULL_DATA
                result.reason = "город и размеры получены, полные данные"
            return result

        if has_scheduled_call(patch) or _contains_any(lower, CALL_PHRASES):
            return Classification(
                temperature=LeadTemperature.HOT,
                stage_hint=StageType.WANTS_CALL,
                attribute_patch=patch,
                reason="указано время перезвона" if has_scheduled_call(patch) else "клиент хочет созвон",
            )

        return Classification(temperature=None, stage_hint=None, attribute_patch=patch)


TEMPERATURE_LABELS = {
    LeadTemperature.HOT.value: "горячий",
    LeadTemperature.WARM.value: "тёплый",
    LeadTemperature.COLD.value: "холодный",
}


def format_decision_notes(temperature: str, stage_name: Optional[str], reason: str) -> str:
    label = TEMPERATURE_LABELS.get(temperature, temperature)
    return f"Оценка: {label}. Стадия: {stage_name or 'текущая'}. {reason}"
