"""Contract event webhook client with exponential backoff retry logic"""

import httpx
import asyncio
import logging
from typing import Dict, Any
from cuotas_gateway.config import settings
from cuotas_gateway.infrastructure.observability.metrics import event_latency_histogram, event_failure_counter

logger = logging.getLogger(__name__)


class ContractEventNotifier:
    """Client for publishing committed contract changes to subscribers"""

    def __init__(
        self,
        webhook_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url if webhook_url is not None else settings.contract_events_webhook_url
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.timeout = settings.http_timeout_seconds
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def send_event(self, payload: Dict[str, Any]) -> None:
        """
        Send a contract event to the subscriber webhook with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s, 16s (base^attempt)
        - Retries on 5xx errors and network failures
        - Tracks latency histogram and failure counter

        Only called after the contract write has committed.

        Args:
            payload: Event data (event, contract_id, ...)
        """
        if not self.enabled:
            return

        attempt = 0
        async with httpx.AsyncClient(transport=self.transport) as client:
            while attempt < self.max_retries:
                try:
                    with event_latency_histogram.time():
                        response = await client.post(
                            self.webhook_url,
                            json=payload,
                            timeout=self.timeout,
                        )
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    event_failure_counter.inc()

                    if attempt >= self.max_retries:
                        # Final failure after all retries
                        logger.error(
                            f"Contract event delivery failed: {e}",
                            extra={"event": payload.get("event"), "contract_id": payload.get("contract_id")},
                        )
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
