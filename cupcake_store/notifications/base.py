from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass
class SmsSendResult:
    status: str
    to_phone: str
    provider: str
    provider_message_id: str | None = None
    error: str | None = None
    response_payload: dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return self.status == "sent"


class SmsProvider(Protocol):
    name: str

    def send(self, *, to_phone: str, message: str) -> SmsSendResult:
        ...


MIN_PHONE_LENGTH = 10


def normalize_phone(phone: str | None) -> str:
    return (phone or "").strip()


def is_valid_phone(phone: str | None) -> bool:
    return len(normalize_phone(phone)) >= MIN_PHONE_LENGTH


def mask_phone(phone: str | None) -> str:
    text = normalize_phone(phone)
    if len(text) <= 4:
        return "****"
    return f"****{text[-4:]}"
