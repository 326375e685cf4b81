"""Investor notification webhook client with exponential backoff retry logic"""

import asyncio
import logging
import httpx
from typing import Any, Dict
from crowdfund_gateway.config import settings
from crowdfund_gateway.infrastructure.observability.metrics import (
    notification_failure_counter,
    notification_latency_histogram,
)

logger = logging.getLogger(__name__)


class NotificationClient:
    """Client for sending investor notifications to the notification service"""

    def __init__(self, webhook_url: str | None = None):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.timeout = settings.http_timeout_seconds

    async def send_distribution_paid(self, investor_id: str, distribution_id: str) -> None:
        """Tell an investor that one of their distributions has been paid out"""
        await self.send_event(
            {
                "event": "DISTRIBUTION_PAID",
                "investor_id": investor_id,
                "distribution_id": distribution_id,
            }
        )

    async def send_event(self, payload: Dict[str, Any]) -> None:
        """
        Send a notification event with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s, 16s (base^attempt)
        - Retries on 5xx errors and network failures
        - Tracks latency histogram and failure counter

        Args:
            payload: Event data to deliver
        """
        attempt = 0
        async with httpx.AsyncClient() as client:
            while attempt < self.max_retries:
                try:
                    with notification_latency_histogram.time():
                        response = await client.post(
                            self.webhook_url,
                            json=payload,
                            timeout=self.timeout,
                        )
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    notification_failure_counter.inc()

                    if attempt >= self.max_retries:
                        # Final failure after all retries
                        logger.error(
                            f"Notification delivery failed: {e}",
                            extra={"event": payload.get("event"), "attempts": attempt},
                        )
                        raise

                    # Exponential backoff: 1s, 2s, 4s, 8s, 16s
                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
