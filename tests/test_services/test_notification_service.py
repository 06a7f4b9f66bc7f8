"""Tests for decision notifiers."""
import pytest
import requests

from app.config import settings
from app.core.exceptions import NotificationError
from app.services.notification_service import (
    DecisionEvent,
    LogDecisionNotifier,
    WebhookDecisionNotifier,
    build_notifier,
)

WEBHOOK_URL = "https://hooks.example.com/decisions"
EVENT = DecisionEvent(
    owner_email="ana@example.com",
    listing_id="6f1c2a3e-0000-0000-0000-000000000001",
    message="Looks good",
    decision="Approved",
)


class FakeResponse:
    def __init__(self, status_code: int = 200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


@pytest.fixture
def webhook() -> WebhookDecisionNotifier:
    return WebhookDecisionNotifier(WEBHOOK_URL, timeout=3, max_retries=2)


@pytest.mark.asyncio
async def test_webhook_posts_event_as_json(webhook, monkeypatch):
    calls = []

    def fake_post(url, json=None, timeout=None):
        calls.append((url, json, timeout))
        return FakeResponse(200)

    monkeypatch.setattr(webhook._session, "post", fake_post)

    await webhook.publish_decision(EVENT)

    assert calls == [
        (
            WEBHOOK_URL,
            {
                "owner_email": "ana@example.com",
                "listing_id": "6f1c2a3e-0000-0000-0000-000000000001",
                "message": "Looks good",
                "decision": "Approved",
            },
            3,
        )
    ]


@pytest.mark.asyncio
async def test_webhook_connection_error_becomes_notification_error(webhook, monkeypatch):
    def fake_post(url, json=None, timeout=None):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(webhook._session, "post", fake_post)

    with pytest.raises(NotificationError, match="connection refused"):
        await webhook.publish_decision(EVENT)


@pytest.mark.asyncio
async def test_webhook_http_error_becomes_notification_error(webhook, monkeypatch):
    monkeypatch.setattr(webhook._session, "post", lambda url, json=None, timeout=None: FakeResponse(502))

    with pytest.raises(NotificationError):
        await webhook.publish_decision(EVENT)


def test_webhook_session_retries_posts(webhook):
    retry = webhook._session.get_adapter(WEBHOOK_URL).max_retries
    assert retry.total == 2
    assert "POST" in retry.allowed_methods
    assert 503 in retry.status_forcelist


@pytest.mark.asyncio
async def test_log_notifier_never_raises():
    await LogDecisionNotifier().publish_decision(EVENT)
    await LogDecisionNotifier().publish_decision(
        DecisionEvent(owner_email=None, listing_id="x", message=None, decision="Rejected")
    )


def test_build_notifier_defaults_to_log(monkeypatch):
    monkeypatch.setattr(settings, "notification_webhook_url", "")
    assert isinstance(build_notifier(), LogDecisionNotifier)


def test_build_notifier_picks_webhook_when_configured(monkeypatch):
    monkeypatch.setattr(settings, "notification_webhook_url", WEBHOOK_URL)
    monkeypatch.setattr(settings, "notification_timeout", 7)
    monkeypatch.setattr(settings, "notification_max_retries", 5)

    notifier = build_notifier()

    assert isinstance(notifier, WebhookDecisionNotifier)
    assert notifier.url == WEBHOOK_URL
    assert notifier.timeout == 7
    assert notifier._session.get_adapter(WEBHOOK_URL).max_retries.total == 5
