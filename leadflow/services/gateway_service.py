"""WhatsApp gateway (ChatFlow-compatible) delivery client.

Every call returns a Result and never raises: the message record is already
persisted by the time delivery is attempted.
"""

import ipaddress
import re
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from leadflow.config import settings
from leadflow.logging_config import get_logger
from leadflow.services.result import DeliveryErrorCode, Result

logger = get_logger("gateway_service")

MIN_PHONE_DIGITS = 10
JID_SUFFIX = "@s.whatsapp.net"

MEDIA_KINDS = {"ptt", "image", "document"}
MEDIA_TEXT_PREFIXES = {
    "ptt": "🎵 Голосовое сообщение",
    "image": "🖼 Изображение",
    "document": "📎 Файл",
}
MEDIA_KIND_ALIASES = {
    "audio": "ptt",
    "voice": "ptt",
    "photo": "image",
    "doc": "document",
    "file": "document",
}


@dataclass(frozen=True)
class DeliveryAttempt:
    """One (url, verb, encoding) tried while delivering a single message."""

    url: str
    method: str
    encoding: str  # query, form, json


def normalize_phone(value: Any) -> str:
    """Digits only: "+7 (701) 123-45-67" -> "77011234567"."""
    return re.sub(r"\D", "", str(value or ""))


def build_jid(phone: Any) -> Optional[str]:
    digits = normalize_phone(phone)
    if len(digits) < MIN_PHONE_DIGITS:
        return None
    return f"{digits}{JID_SUFFIX}"


def normalize_media_kind(kind: Optional[str]) -> Optional[str]:
    value = (kind or "").strip().lower()
    value = MEDIA_KIND_ALIASES.get(value, value)
    return value if value in MEDIA_KINDS else None


def is_public_media_url(url: str) -> bool:
    """Reject URLs the gateway cannot fetch (loopback, private, link-local)."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in {"http", "https"}:
        return False
    host = (parsed.hostname or "").strip().lower()
    if not host:
        return False
    if host == "localhost" or host.endswith(".localhost") or host.endswith(".local"):
        return False
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return True
    return not (
        address.is_loopback
        or address.is_private
        or address.is_link_local
        or address.is_unspecified
        or address.is_reserved
    )


def _looks_like_html(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "").lower()
    if "text/html" in content_type:
        return True
    head = response.text.lstrip()[:64].lower()
    return head.startswith("<!doctype html") or head.startswith("<html")


def _parse_success(response: httpx.Response) -> Optional[bool]:
    """True/False from a JSON `success` field, None if the body is not JSON."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    return payload.get("success") is True


class GatewayClient:
    """Sends outbound text and media to the external WhatsApp gateway."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or settings.gateway_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.gateway_timeout_seconds

    def _params(self, credential: str, channel: str, jid: str) -> dict[str, str]:
        return {"token": credential, "instance_id": channel, "jid": jid}

    def _check_target(self, credential: Optional[str], channel: Optional[str], phone: Any) -> Result[str]:
        if not credential or not channel:
            return Result.failure("Gateway token or instance_id not configured", DeliveryErrorCode.CONFIG_MISSING)
        jid = build_jid(phone)
        if not jid:
            return Result.failure(f"Phone {phone!r} is too short", DeliveryErrorCode.INVALID_PHONE)
        return Result.success(jid)

    def send_text(self, credential: Optional[str], channel: Optional[str], phone: Any, body: str) -> Result[bool]:
        """Send a text message. Success means the gateway answered `{"success": true}`."""
        target = self._check_target(credential, channel, phone)
        if not target.ok:
            logger.warning(f"send_text skipped: {target.error}")
            return target
        if not body or not body.strip():
            return Result.failure("Empty message body", DeliveryErrorCode.GATEWAY_REJECTED)

        jid = target.value
        params = self._params(credential, channel, jid)
        params["msg"] = body.strip()
        url = f"{self.base_url}/send-text"

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.get(url, params=params)
        except httpx.HTTPError as e:
            logger.error(f"Error sending WhatsApp message: {e}", extra={"context": {"jid": jid}})
            return Result.failure(str(e), DeliveryErrorCode.NETWORK_ERROR)

        logger.info(
            f"Gateway response: status={response.status_code}, jid={jid}, body={response.text[:200]}"
        )
        success = _parse_success(response)
        if success is None:
            return Result.failure("Gateway returned non-JSON body", DeliveryErrorCode.MALFORMED_RESPONSE)
        if not success:
            return Result.failure("Gateway reported failure", DeliveryErrorCode.GATEWAY_REJECTED)
        return Result.success(True)

    def _media_attempts(self) -> list[DeliveryAttempt]:
        url = f"{self.base_url}/send-media"
        return [
            DeliveryAttempt(url=url, method="GET", encoding="query"),
            DeliveryAttempt(url=url, method="POST", encoding="form"),
            DeliveryAttempt(url=url, method="POST", encoding="json"),
        ]

    def _try_media(self, client: httpx.Client, attempt: DeliveryAttempt, params: dict) -> httpx.Response:
        if attempt.encoding == "query":
            return client.get(attempt.url, params=params)
        if attempt.encoding == "form":
            return client.post(attempt.url, data=params)
        return client.post(attempt.url, json=params)

    def send_media(
        self,
        credential: Optional[str],
        channel: Optional[str],
        phone: Any,
        media_url: str,
        kind: str,
    ) -> Result[bool]:
        """Send media, trying query GET, form POST, then JSON POST.

        When every strategy comes back as an HTML page the gateway has no media
        support, so the link is sent as a labelled text message instead.
        """
        target = self._check_target(credential, channel, phone)
        if not target.ok:
            logger.warning(f"send_media skipped: {target.error}")
            return target

        media_kind = normalize_media_kind(kind)
        if not media_kind:
            return Result.failure(f"Unsupported media kind {kind!r}", DeliveryErrorCode.UNSUPPORTED_MEDIA)
        if not media_url or not is_public_media_url(media_url):
            logger.warning(f"send_media rejected non-public url: {media_url}")
            return Result.failure("Media URL is not publicly reachable", DeliveryErrorCode.NON_PUBLIC_URL)

        jid = target.value
        params = self._params(credential, channel, jid)
        params["url"] = media_url
        params["type"] = media_kind

        html_responses = 0
        attempts = self._media_attempts()
        last_failure: Result[bool] = Result.failure("No delivery strategy succeeded", DeliveryErrorCode.GATEWAY_REJECTED)

        with httpx.Client(timeout=self.timeout) as client:
            for attempt in attempts:
                try:
                    response = self._try_media(client, attempt, params)
                except httpx.HTTPError as e:
                    logger.warning(f"Media attempt {attempt.method}/{attempt.encoding} failed: {e}")
                    last_failure = Result.failure(str(e), DeliveryErrorCode.NETWORK_ERROR)
                    continue

                logger.info(
                    f"Gateway media response: {attempt.method}/{attempt.encoding} "
                    f"status={response.status_code}, jid={jid}, body={response.text[:200]}"
                )
                if _looks_like_html(response):
                    html_responses += 1
                    continue
                success = _parse_success(response)
                if success:
                    return Result.success(True)
                if success is None:
                    last_failure = Result.failure("Gateway returned non-JSON body", DeliveryErrorCode.MALFORMED_RESPONSE)
                else:
                    last_failure = Result.failure("Gateway reported failure", DeliveryErrorCode.GATEWAY_REJECTED)

        if html_responses == len(attempts):
            logger.info(f"Gateway has no media support, sending link as text: jid={jid}")
            return self.send_text(credential, channel, phone, f"{MEDIA_TEXT_PREFIXES[media_kind]}: {media_url}")

        return last_failure
