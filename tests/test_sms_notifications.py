from unittest.mock import patch

import httpx
import pytest

import cupcake_store.services.event_handlers as event_handlers
from cupcake_store.core import config
from cupcake_store.notifications.http_provider import HttpSmsProvider
from cupcake_store.notifications.mock_provider import MockSmsProvider
from cupcake_store.notifications.service import SmsService
from cupcake_store.notifications.templates import format_currency, render_template

GATEWAY_URL = "https://sms.example.com/send"


def _response(status_code: int, **kwargs) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", GATEWAY_URL), **kwargs)


def test_mock_provider_records_sent_message():
    provider = MockSmsProvider()

    result = provider.send(to_phone=" 11999990000 ", message="Olá")

    assert result.ok
    assert result.to_phone == "11999990000"
    assert provider.sent == [result]


def test_mock_provider_rejects_short_phone():
    provider = MockSmsProvider()

    result = provider.send(to_phone="1234", message="Olá")

    assert result.status == "failed"
    assert result.error == "invalid_phone"
    assert provider.sent == []


def test_http_provider_posts_to_gateway():
    provider = HttpSmsProvider(gateway_url=GATEWAY_URL, token="tok")

    with patch.object(httpx.Client, "post", return_value=_response(200, json={"id": "msg-1"})) as post:
        result = provider.send(to_phone="11999990000", message="Pedido pronto")

    assert result.ok
    assert result.provider_message_id == "msg-1"
    assert post.call_args.kwargs["json"] == {"to": "11999990000", "message": "Pedido pronto"}
    assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer tok"


def test_http_provider_gives_up_after_retries():
    provider = HttpSmsProvider(gateway_url=GATEWAY_URL)

    with patch.object(httpx.Client, "post", return_value=_response(500, text="erro")) as post:
        result = provider.send(to_phone="11999990000", message="Pedido pronto")

    assert result.status == "failed"
    assert post.call_count == HttpSmsProvider.MAX_RETRIES
    assert "500" in result.error


def test_http_provider_handles_network_errors():
    provider = HttpSmsProvider(gateway_url=GATEWAY_URL)

    with patch.object(httpx.Client, "post", side_effect=httpx.ConnectError("sem rede")):
        result = provider.send(to_phone="11999990000", message="Pedido pronto")

    assert result.status == "failed"
    assert result.error == "sem rede"


def test_service_falls_back_to_mock_without_gateway(monkeypatch):
    monkeypatch.setattr(config, "SMS_PROVIDER", "http")
    monkeypatch.setattr(config, "SMS_GATEWAY_URL", "")

    assert isinstance(SmsService().provider, MockSmsProvider)


def test_service_uses_http_provider_when_configured(monkeypatch):
    monkeypatch.setattr(config, "SMS_PROVIDER", "http")
    monkeypatch.setattr(config, "SMS_GATEWAY_URL", GATEWAY_URL)

    assert isinstance(SmsService().provider, HttpSmsProvider)


def test_welcome_message_uses_role_display_name():
    provider = MockSmsProvider()

    SmsService(provider=provider).send_welcome(
        phone_number="11999990000",
        email="bruno@example.com",
        role="employee",
        first_name="Bruno",
    )

    message = provider.sent[0].response_payload["message"]
    assert message.startswith("Olá Bruno!")
    assert "Funcionário" in message
    assert "bruno@example.com" in message


def test_order_ready_message_formats_total():
    provider = MockSmsProvider()

    SmsService(provider=provider).send_order_ready(phone_number="11999990000", order_id=42, total_amount="1234.5")

    message = provider.sent[0].response_payload["message"]
    assert "#42" in message
    assert "R$ 1.234,50" in message


def test_format_currency_handles_missing_value():
    assert format_currency(None) == "R$ 0,00"
    assert format_currency("9.9") == "R$ 9,90"


def test_render_template_rejects_unknown_template():
    with pytest.raises(KeyError):
        render_template("promo", {})


def test_preassigned_role_welcome_requires_phone():
    provider = MockSmsProvider()

    with patch.object(event_handlers, "sms_service", SmsService(provider=provider)):
        event_handlers.handle_preassigned_role_created({"email": "x@example.com", "role": "employee"})
        event_handlers.handle_preassigned_role_created(
            {"email": "y@example.com", "role": "admin", "phone_number": "11977776666", "first_name": "Yara"}
        )

    assert len(provider.sent) == 1
    assert "Administrador" in provider.sent[0].response_payload["message"]
