"""Map provider webhook payloads onto a canonical (text, phone) pair.

Each extractor is a pure function over the raw body that either returns a
valid message or None. `normalize_webhook` tries them in a fixed order and
the first valid result wins.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from leadflow.services.gateway_service import MIN_PHONE_DIGITS, normalize_phone

MEDIA_PLACEHOLDERS = {
    "audio": "[Голосовое сообщение]",
    "ptt": "[Голосовое сообщение]",
    "image": "[Фото]",
    "video": "[Видео]",
}
DEFAULT_MEDIA_PLACEHOLDER = "[Медиа сообщение]"

FLAT_TEXT_KEYS = ("text", "body", "content", "messageText", "message")
FLAT_PHONE_KEYS = ("phone", "from", "jid", "sender", "senderId", "userId")


@dataclass(frozen=True)
class InboundMessage:
    text: str
    phone: str
    name: Optional[str] = None
    channel_external_id: Optional[str] = None


Extractor = Callable[[dict], Optional[InboundMessage]]


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _first_item(value: Any) -> dict:
    if isinstance(value, list) and value:
        return _as_dict(value[0])
    return {}


def _str_or_none(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def _first_text(source: dict, keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        value = source.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _first_scalar(source: dict, keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        value = _str_or_none(source.get(key))
        if value:
            return value
    return None


def build_message(
    text: Optional[str],
    phone: Optional[str],
    name: Optional[str] = None,
) -> Optional[InboundMessage]:
    """Validate and normalize: non-empty text and at least 10 phone digits."""
    if not text or not text.strip():
        return None
    digits = normalize_phone(phone)
    if len(digits) < MIN_PHONE_DIGITS:
        return None
    return InboundMessage(text=text.strip(), phone=digits, name=(name or "").strip() or None)


def extract_chatflow(body: dict) -> Optional[InboundMessage]:
    """ChatFlow: {message: str, metadata: {remoteJid, sender}, mediaData: {type}}."""
    metadata = _as_dict(body.get("metadata"))
    if not metadata:
        return None
    text = body.get("message") if isinstance(body.get("message"), str) else None
    if not (text and text.strip()):
        media = _as_dict(body.get("mediaData"))
        if media:
            media_type = str(media.get("type") or "").lower()
            text = MEDIA_PLACEHOLDERS.get(media_type, DEFAULT_MEDIA_PLACEHOLDER)
    phone = _str_or_none(metadata.get("remoteJid"))
    name = metadata.get("sender") if isinstance(metadata.get("sender"), str) else None
    return build_message(text, phone, name)


def extract_chatflow_legacy(body: dict) -> Optional[InboundMessage]:
    """Older ChatFlow: {sender: {id, name}, message: {text|caption|body, from}}."""
    sender = _as_dict(body.get("sender"))
    message = _as_dict(body.get("message"))
    if not sender and not message:
        return None
    text = _first_text(message, ("text", "caption")) or _str_or_none(message.get("body"))
    phone = _str_or_none(sender.get("id")) or _str_or_none(message.get("from"))
    name = sender.get("name") if isinstance(sender.get("name"), str) else None
    return build_message(text, phone, name)


def extract_cloud_api(body: dict) -> Optional[InboundMessage]:
    """Meta Cloud API: entry[0].changes[0].value.messages[0]."""
    value = _as_dict(_first_item(_first_item(body.get("entry")).get("changes")).get("value"))
    first = _first_item(value.get("messages"))
    if not first:
        return None
    text_obj = _as_dict(first.get("text"))
    text = text_obj.get("body") if isinstance(text_obj.get("body"), str) else None
    phone = _str_or_none(first.get("from")) or _str_or_none(_first_item(value.get("contacts")).get("wa_id"))
    name = _as_dict(_first_item(value.get("contacts")).get("profile")).get("name")
    return build_message(text, phone, name if isinstance(name, str) else None)


def extract_wrapped(body: dict) -> Optional[InboundMessage]:
    """Bot-builder wrappers: {data: {...}} or {payload: {...}}."""
    for key in ("data", "payload"):
        inner = _as_dict(body.get(key))
        if not inner:
            continue
        text = _first_text(inner, ("text", "body", "message"))
        phone = _first_scalar(inner, ("from", "phone", "jid"))
        found = build_message(text, phone)
        if found:
            return found
    return None


def extract_flat(body: dict) -> Optional[InboundMessage]:
    """Flat {text|body|message: str, phone|from|jid: str}."""
    text = _first_text(body, FLAT_TEXT_KEYS)
    phone = _first_scalar(body, FLAT_PHONE_KEYS) or _str_or_none(_as_dict(body.get("contact")).get("phone"))
    return build_message(text, phone)


def extract_messages_array(body: dict) -> Optional[InboundMessage]:
    """{messages: [{text|body, from}]}, first element only."""
    first = _first_item(body.get("messages"))
    if not first:
        return None
    text = first.get("text") if isinstance(first.get("text"), str) else None
    if text is None:
        text = _str_or_none(first.get("body")) or _as_dict(first.get("text")).get("body")
    phone = _str_or_none(first.get("from")) or _str_or_none(_as_dict(first.get("context")).get("from"))
    return build_message(text if isinstance(text, str) else None, phone)


def extract_query(query: dict) -> Optional[InboundMessage]:
    """Query string: text|msg + from|phone|jid."""
    text = _first_text(query, ("text", "msg"))
    phone = _first_scalar(query, ("from", "phone", "jid"))
    return build_message(text, phone)


BODY_EXTRACTORS: tuple[Extractor, ...] = (
    extract_chatflow,
    extract_chatflow_legacy,
    extract_cloud_api,
    extract_wrapped,
    extract_flat,
    extract_messages_array,
)


def extract_channel_id(body: dict, query: Optional[dict] = None) -> Optional[str]:
    """Gateway instance the message arrived on; later keys take precedence."""
    channel_id = None
    sources = (
        _as_dict(query).get("instance_id"),
        _as_dict(query).get("channelId"),
        body.get("instance_id"),
        _as_dict(body.get("metadata")).get("instance_id"),
        body.get("channelId"),
    )
    for value in sources:
        if isinstance(value, str) and value.strip():
            channel_id = value.strip()
    return channel_id


def normalize_webhook(
    body: Any,
    query: Optional[dict] = None,
    extractors: tuple[Extractor, ...] = BODY_EXTRACTORS,
) -> Optional[InboundMessage]:
    """First extractor that yields a valid message wins; the query string is last."""
    raw = _as_dict(body)
    found = None
    for extractor in extractors:
        found = extractor(raw)
        if found:
            break
    if not found and query:
        found = extract_query(query)
    if not found:
        return None
    return InboundMessage(
        text=found.text,
        phone=found.phone,
        name=found.name,
        channel_external_id=extract_channel_id(raw, query),
    )
