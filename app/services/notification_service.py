"""Decision notifications — tells listing owners that moderation is done.

Delivery is best-effort from the moderation workflow's point of view: the
decision is already committed when a notifier runs, and callers log and drop
NotificationError instead of failing the decision.

Two notifiers exist:
- LogDecisionNotifier: writes the event to the application log (default).
- WebhookDecisionNotifier: POSTs the event as JSON to NOTIFICATION_WEBHOOK_URL.
  Uses a requests.Session with urllib3 Retry; the blocking call runs in
  asyncio.to_thread.
"""
import asyncio
from dataclasses import asdict, dataclass
from typing import Optional, Protocol

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app.config import settings
from app.core.exceptions import NotificationError
from app.core.logging import get_logger

logger = get_logger(__name__)

DECISION_APPROVED = "Approved"
DECISION_REJECTED = "Rejected"


@dataclass(frozen=True)
class DecisionEvent:
    owner_email: Optional[str]
    listing_id: str
    message: Optional[str]
    decision: str


class DecisionNotifier(Protocol):
    async def publish_decision(self, event: DecisionEvent) -> None: ...


class LogDecisionNotifier:
    """Records decisions in the log only."""

    async def publish_decision(self, event: DecisionEvent) -> None:
        logger.info(
            "Listing %s %s; notifying %s",
            event.listing_id,
            event.decision.lower(),
            event.owner_email or "<no owner email>",
            extra={"listing_id": event.listing_id, "decision": event.decision, "owner_email": event.owner_email},
        )


class WebhookDecisionNotifier:
    """Delivers decisions to an HTTP endpoint (mail relay, queue bridge, ...)."""

    def __init__(self, url: str, timeout: int = 10, max_retries: int = 3, backoff_factor: float = 1.0):
        self.url = url
        self.timeout = timeout

        self._session = requests.Session()
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["POST"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)
        self._session.headers.update({"Content-Type": "application/json"})

    def _post(self, payload: dict) -> None:
        response = self._session.post(self.url, json=payload, timeout=self.timeout)
        response.raise_for_status()

    async def publish_decision(self, event: DecisionEvent) -> None:
        payload = asdict(event)
        try:
            await asyncio.to_thread(self._post, payload)
        except requests.RequestException as e:
            raise NotificationError(f"Webhook delivery failed for listing {event.listing_id}: {e}") from e
        logger.info(
            "Decision webhook delivered",
            extra={"listing_id": event.listing_id, "decision": event.decision},
        )


def build_notifier() -> DecisionNotifier:
    """Pick the notifier from settings."""
    if settings.notification_webhook_url:
        return WebhookDecisionNotifier(
            settings.notification_webhook_url,
            timeout=settings.notification_timeout,
            max_retries=settings.notification_max_retries,
        )
    return LogDecisionNotifier()
