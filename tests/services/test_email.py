"""Tests for welcome email rendering and Resend delivery."""

import json

import httpx
import pytest

from elaro_edge.core.errors import ConfigurationError, EmailDeliveryError
from elaro_edge.services.email import (
    WELCOME_SUBJECT,
    ResendEmailClient,
    render_welcome_email,
)


def test_render_escapes_first_name() -> None:
    email = render_welcome_email("ada@example.com", "<script>Ada</script>", year=2025)
    assert email.to == "ada@example.com"
    assert email.subject == WELCOME_SUBJECT
    assert "Hi &lt;script&gt;Ada&lt;/script&gt;," in email.html
    assert "<script>Ada" not in email.html
    assert "&copy; 2025 ELARO" in email.html


def test_render_falls_back_to_neutral_greeting() -> None:
    assert "Hi there," in render_welcome_email("x@example.com", "").html


@pytest.mark.asyncio
async def test_send_posts_to_resend() -> None:
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        captured["payload"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "re_123"})

    client = ResendEmailClient(
        api_key="re_key",
        sender="ELARO <hi@example.com>",
        base_url="https://resend.test",
        transport=httpx.MockTransport(handler),
    )
    email_id = await client.send(render_welcome_email("ada@example.com", "Ada"))

    assert email_id == "re_123"
    assert captured["url"] == "https://resend.test/emails"
    assert captured["auth"] == "Bearer re_key"
    payload = captured["payload"]
    assert payload["to"] == ["ada@example.com"]
    assert payload["from"] == "ELARO <hi@example.com>"
    assert payload["subject"] == WELCOME_SUBJECT


@pytest.mark.asyncio
async def test_send_raises_on_provider_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(422, json={"message": "bad"}))
    client = ResendEmailClient(api_key="re_key", base_url="https://resend.test", transport=transport)
    with pytest.raises(EmailDeliveryError) as exc_info:
        await client.send(render_welcome_email("ada@example.com", "Ada"))
    assert exc_info.value.to_dict() == {
        "error": "Failed to send welcome email",
        "code": "EXTERNAL_SERVICE_ERROR",
    }


@pytest.mark.asyncio
async def test_send_raises_on_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    client = ResendEmailClient(
        api_key="re_key", base_url="https://resend.test", transport=httpx.MockTransport(handler)
    )
    with pytest.raises(EmailDeliveryError):
        await client.send(render_welcome_email("ada@example.com", "Ada"))


@pytest.mark.asyncio
async def test_send_without_api_key_is_configuration_error() -> None:
    client = ResendEmailClient(api_key="", base_url="https://resend.test")
    with pytest.raises(ConfigurationError):
        await client.send(render_welcome_email("ada@example.com", "Ada"))
