from __future__ import annotations

import logging
import uuid

from cupcake_store.notifications.base import SmsProvider, SmsSendResult, is_valid_phone, normalize_phone

logger = logging.getLogger(__name__)


class MockSmsProvider(SmsProvider):
    """Modo simulação: registra a mensagem no log em vez de enviar."""

    name = "mock"

    def __init__(self) -> None:
        self.sent: list[SmsSendResult] = []

    def send(self, *, to_phone: str, message: str) -> SmsSendResult:
        phone = normalize_phone(to_phone)
        if not is_valid_phone(phone):
            logger.error("[SMS] Invalid phone number: %s", phone)
            return SmsSendResult(status="failed", to_phone=phone, provider=self.name, error="invalid_phone")

        logger.info("[SMS] Simulated send to=%s message=%s", phone, message)
        result = SmsSendResult(
            status="sent",
            to_phone=phone,
            provider=self.name,
            provider_message_id=f"mock-{uuid.uuid4().hex[:12]}",
            response_payload={"message": message},
        )
        self.sent.append(result)
        return result
