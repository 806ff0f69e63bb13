"""Outbound job order notifications for the external job board."""

from __future__ import annotations

import json
from functools import partial
from typing import Any

import aiohttp
from structlog import get_logger

from app.core.config import settings

logger = get_logger()


class JobOrderWebhookClient:
    """Posts job order lifecycle events to the configured webhook."""

    def __init__(self, url: str | None = None, timeout_seconds: int | None = None) -> None:
        self.url = url if url is not None else settings.job_order_webhook_url
        self.timeout = aiohttp.ClientTimeout(
            total=timeout_seconds or settings.webhook_timeout_seconds
        )
        self.headers = {"Content-Type": "application/json"}

    @property
    def configured(self) -> bool:
        return bool(self.url)

    async def post(self, payload: dict[str, Any]) -> int:
        """
        POST a JSON payload to the webhook.

        Returns:
            HTTP status code of the response

        Raises:
            aiohttp.ClientError: On network failure or non-2xx response
        """
        async with aiohttp.ClientSession(
            timeout=self.timeout, json_serialize=partial(json.dumps, default=str)
        ) as session:
            async with session.post(self.url, json=payload, headers=self.headers) as response:
                response.raise_for_status()
                return response.status

    async def notify(self, action: str, job_order: dict[str, Any]) -> bool:
        """
        Send {"action": action, **job_order} to the webhook.

        Best-effort: a missing URL, a network error, or a non-2xx response is
        logged and reported as False, never raised.

        Args:
            action: "create", "update" or "delete"
            job_order: Job order record

        Returns:
            True if the webhook accepted the notification
        """
        job_order_id = str(job_order.get("id")) if job_order.get("id") else None

        if not self.configured:
            logger.warning(
                "job_order_webhook_not_configured",
                action=action,
                job_order_id=job_order_id,
            )
            return False

        payload = {"action": action, **job_order}

        try:
            status = await self.post(payload)
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.error(
                "job_order_webhook_failed",
                action=action,
                job_order_id=job_order_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        logger.info(
            "job_order_webhook_sent",
            action=action,
            job_order_id=job_order_id,
            status=status,
        )
        return True


# Module-level singleton
job_order_webhook = JobOrderWebhookClient()
