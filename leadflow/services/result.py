from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class DeliveryErrorCode(str, Enum):
    CONFIG_MISSING = "config_missing"
    INVALID_PHONE = "invalid_phone"
    NON_PUBLIC_URL = "non_public_url"
    UNSUPPORTED_MEDIA = "unsupported_media"
    NETWORK_ERROR = "network_error"
    GATEWAY_REJECTED = "gateway_rejected"
    MALFORMED_RESPONSE = "malformed_response"


@dataclass
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @staticmethod
    def success(value: T) -> "Result[T]":
        return Result(ok=True, value=value)

    @staticmethod
    def failure(error: str, code: str = "unknown") -> "Result[T]":
        if isinstance(code, Enum):
            code = code.value
        return Result(ok=False, error=error, error_code=code)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default

    def is_config_missing(self) -> bool:
        return not self.ok and self.error_code == DeliveryErrorCode.CONFIG_MISSING.value
