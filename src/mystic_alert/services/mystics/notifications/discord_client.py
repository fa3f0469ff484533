"""
Discord Webhook Delivery.

Posts alerts to the configured webhook. Each response is classified as
delivered, rate limited, rejected (the webhook is gone or the URL is
wrong) or transient. Only transient failures are retried, with
exponential backoff.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx

from ....core.formatters import get_utc_now
from ....core.logging import get_logger

if TYPE_CHECKING:
    from .formatter import Alert

logger = get_logger(__name__)

DEFAULT_RETRY_AFTER = 5.0


class Outcome(str, Enum):
    """How a single webhook response is handled."""

    DELIVERED = "delivered"
    RATE_LIMITED = "rate_limited"
    REJECTED = "rejected"
    TRANSIENT = "transient"


def classify(status_code: int) -> Outcome:
    if 200 <= status_code < 300:
        return Outcome.DELIVERED
    if status_code == 429:
        return Outcome.RATE_LIMITED
    if status_code >= 500:
        return Outcome.TRANSIENT
    return Outcome.REJECTED


def retry_after_seconds(response: httpx.Response) -> float:
    """Rate limit wait from the Retry-After header or Discord's JSON body."""
    header = response.headers.get("Retry-After")
    if header is not None:
        try:
            return float(header)
        except ValueError:
            pass
    try:
        return float(response.json()["retry_after"])
    except (ValueError, KeyError, TypeError):
        return DEFAULT_RETRY_AFTER


@dataclass
class SendResult:
    """Outcome of one delivery, after any retries."""

    success: bool
    status_code: int | None = None
    error: str | None = None
    retry_after: float | None = None

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429


@dataclass
class DeliveryMetrics:
    sent: int = 0
    failed: int = 0
    last_success: datetime | None = None
    last_failure: datetime | None = None

    def record(self, result: SendResult) -> SendResult:
        if result.success:
            self.sent += 1
            self.last_success = get_utc_now()
        else:
            self.failed += 1
            self.last_failure = get_utc_now()
        return result

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_sent": self.sent,
            "total_failed": self.failed,
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "last_failure": self.last_failure.isoformat() if self.last_failure else None,
        }


class DiscordClient:
    """
    Webhook client used as the pipeline's alert sink.

    ``webhook_url`` may be changed at any time; the running watcher does
    so when the settings file names a new webhook.
    """

    def __init__(
        self,
        webhook_url: str | None = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.webhook_url = webhook_url
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.metrics = DeliveryMetrics()
        self._client = client

    @property
    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(30.0))
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def send_alert(self, alert: Alert) -> SendResult:
        return await self.send(alert.to_webhook_payload())

    async def send(self, payload: dict[str, Any]) -> SendResult:
        """
        Post a webhook payload.

        Args:
            payload: Discord webhook body (content and embeds)

        Returns:
            SendResult; failures are reported here, never raised
        """
        if not self.webhook_url:
            logger.warning("No Discord webhook configured, alert dropped")
            return SendResult(success=False, error="Webhook not configured")

        last_error = "No attempts made"
        for attempt in range(1, self.max_retries + 1):
            try:
                response = await self._get_client().post(self.webhook_url, json=payload)
            except httpx.TimeoutException:
                last_error = "Timeout after retries"
            except httpx.RequestError as e:
                last_error = f"Request error: {e}"
            else:
                outcome = classify(response.status_code)
                if outcome is Outcome.DELIVERED:
                    return self.metrics.record(
                        SendResult(success=True, status_code=response.status_code)
                    )
                if outcome is Outcome.RATE_LIMITED:
                    wait = retry_after_seconds(response)
                    logger.warning("Discord rate limited, retry after %.1fs", wait)
                    return self.metrics.record(
                        SendResult(
                            success=False,
                            status_code=429,
                            error="Rate limited",
                            retry_after=wait,
                        )
                    )
                if outcome is Outcome.REJECTED:
                    logger.warning(
                        "Discord rejected the webhook (HTTP %d)", response.status_code
                    )
                    return self.metrics.record(
                        SendResult(
                            success=False,
                            status_code=response.status_code,
                            error=f"Webhook rejected (HTTP {response.status_code})",
                        )
                    )
                last_error = f"HTTP {response.status_code}: {response.text[:200]}"
                if attempt == self.max_retries:
                    return self.metrics.record(
                        SendResult(
                            success=False,
                            status_code=response.status_code,
                            error=last_error,
                        )
                    )

            if attempt < self.max_retries:
                delay = self.base_delay * 2 ** (attempt - 1)
                logger.warning(
                    "Discord delivery attempt %d failed (%s), retrying in %.1fs",
                    attempt,
                    last_error,
                    delay,
                )
                await asyncio.sleep(delay)

        return self.metrics.record(SendResult(success=False, error=last_error))

    def get_metrics(self) -> dict[str, Any]:
        return self.metrics.to_dict()
