from __future__ import annotations

import logging

from cupcake_store.core import config
from cupcake_store.core.roles import ROLE_DISPLAY_NAMES, parse_role
from cupcake_store.notifications.base import SmsProvider, SmsSendResult, mask_phone
from cupcake_store.notifications.http_provider import HttpSmsProvider
from cupcake_store.notifications.mock_provider import MockSmsProvider
from cupcake_store.notifications.templates import format_currency, greeting_for, render_template

logger = logging.getLogger(__name__)


class SmsService:
    def __init__(self, provider: SmsProvider | None = None) -> None:
        self._provider = provider

    @property
    def provider(self) -> SmsProvider:
        if self._provider is None:
            self._provider = self._select_provider()
        return self._provider

    @staticmethod
    def _select_provider() -> SmsProvider:
        if config.SMS_PROVIDER == "http" and config.SMS_GATEWAY_URL:
            return HttpSmsProvider(gateway_url=config.SMS_GATEWAY_URL, token=config.SMS_GATEWAY_TOKEN)
        if config.SMS_PROVIDER == "http":
            logger.warning("[SMS] SMS_PROVIDER=http without SMS_GATEWAY_URL; using mock provider")
        return MockSmsProvider()

    def send(self, *, to_phone: str, template: str, variables: dict) -> SmsSendResult:
        message = render_template(template, variables)
        result = self.provider.send(to_phone=to_phone, message=message)
        if not result.ok:
            logger.warning(
                "[SMS] delivery failed template=%s to=%s provider=%s error=%s",
                template,
                mask_phone(to_phone),
                result.provider,
                result.error,
            )
        return result

    def send_welcome(
        self,
        *,
        phone_number: str,
        email: str,
        role: str,
        first_name: str | None = None,
    ) -> SmsSendResult:
        try:
            role_name = ROLE_DISPLAY_NAMES[parse_role(role)]
        except ValueError:
            role_name = role
        return self.send(
            to_phone=phone_number,
            template="welcome",
            variables={
                "greeting": greeting_for(first_name),
                "role_name": role_name,
                "email": email,
            },
        )

    def send_order_ready(
        self,
        *,
        phone_number: str,
        order_id: int,
        total_amount,
        customer_name: str | None = None,
    ) -> SmsSendResult:
        return self.send(
            to_phone=phone_number,
            template="order_ready",
            variables={
                "greeting": greeting_for(customer_name),
                "order_number": order_id,
                "order_total": format_currency(total_amount),
            },
        )


sms_service = SmsService()
