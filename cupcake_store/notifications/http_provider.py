from __future__ import annotations

import json
import logging

import httpx

from cupcake_store.notifications.base import (
    SmsProvider,
    SmsSendResult,
    is_valid_phone,
    mask_phone,
    normalize_phone,
)

logger = logging.getLogger(__name__)


class HttpSmsProvider(SmsProvider):
    """Envia via gateway HTTP genérico: POST {to, message} com token Bearer."""

    name = "http"
    MAX_RETRIES = 3

    def __init__(self, *, gateway_url: str, token: str = "", timeout: float = 10.0) -> None:
        self.gateway_url = gateway_url
        self.token = token
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def send(self, *, to_phone: str, message: str) -> SmsSendResult:
        phone = normalize_phone(to_phone)
        if not is_valid_phone(phone):
            logger.error("[SMS] Invalid phone number: %s", mask_phone(phone))
            return SmsSendResult(status="failed", to_phone=phone, provider=self.name, error="invalid_phone")

        if not self.gateway_url:
            return SmsSendResult(
                status="failed",
                to_phone=phone,
                provider=self.name,
                error="Gateway de SMS não configurado",
            )

        payload = {"to": phone, "message": message}
        last_error: str | None = None

        for attempt in range(1, self.MAX_RETRIES + 1):
            try:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(self.gateway_url, headers=self._headers(), json=payload)

                if 200 <= response.status_code < 300:
                    try:
                        data = response.json()
                    except json.JSONDecodeError:
                        data = {"raw": response.text}
                    provider_id = data.get("id") if isinstance(data, dict) else None
                    logger.info("[SMS] sent to=%s attempt=%s", mask_phone(phone), attempt)
                    return SmsSendResult(
                        status="sent",
                        to_phone=phone,
                        provider=self.name,
                        provider_message_id=str(provider_id) if provider_id is not None else None,
                        response_payload=data if isinstance(data, dict) else {"raw": data},
                    )

                last_error = f"Erro SMS {response.status_code}: {response.text}"
            except httpx.HTTPError as exc:
                last_error = str(exc)

            logger.warning(
                "[SMS] send attempt failed to=%s attempt=%s error=%s",
                mask_phone(phone),
                attempt,
                last_error,
            )

        return SmsSendResult(status="failed", to_phone=phone, provider=self.name, error=last_error)
