"""Email dispatchers — webhook payload and failure mapping."""

import json
import logging

import httpx
import pytest

from parley.core.errors import EmailDispatchError
from parley.infrastructure.email_dispatch import (
    LoggingEmailDispatcher, WebhookEmailDispatcher, render_otp_text,
)


def _dispatcher(handler) -> WebhookEmailDispatcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebhookEmailDispatcher(
        "https://mail.example/send", sender="no-reply@parley.local", client=client,
    )


async def test_webhook_posts_otp_mail():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(202)

    await _dispatcher(handler).send_otp("a@x.com", "048213")

    assert seen[0]["to"] == "a@x.com"
    assert seen[0]["from"] == "no-reply@parley.local"
    assert "048213" in seen[0]["text"]


async def test_webhook_error_status_raises():
    dispatcher = _dispatcher(lambda request: httpx.Response(500))
    with pytest.raises(EmailDispatchError):
        await dispatcher.send_otp("a@x.com", "048213")


async def test_webhook_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(EmailDispatchError):
        await _dispatcher(handler).send_otp("a@x.com", "048213")


async def test_logging_dispatcher_logs_code(caplog):
    with caplog.at_level(logging.INFO, logger="parley.infrastructure.email_dispatch"):
        await LoggingEmailDispatcher().send_otp("a@x.com", "048213")
    assert "048213" in caplog.text


def test_render_otp_text_mentions_expiry():
    assert "5 minutes" in render_otp_text("048213", 300)
