"""Push Gateway Client - Imperative Shell.

This module delivers batches of push messages to the push gateway
(Expo push API by default). All I/O is contained here; message
formatting is in the core module.
"""

import logging
from dataclasses import dataclass
from typing import Any

import requests

from shakewatch.core.config import PUSH_GATEWAY_URL
from shakewatch.core.errors import DispatchFailure
from shakewatch.core.notifications import OutboundMessage


logger = logging.getLogger(__name__)


# Default timeout for gateway requests (seconds)
DEFAULT_TIMEOUT = 10


@dataclass
class GatewayReply:
    """Accepted gateway response.

    Attributes:
        status_code: HTTP status code
        body: Decoded JSON body (empty dict if the body is not JSON)
    """
    status_code: int
    body: dict[str, Any]


@dataclass
class DispatchResult:
    """Outcome of dispatching one batch.

    Attributes:
        success: Whether the gateway accepted the batch
        sent: Number of messages in the batch
        status_code: HTTP status code (0 when no request was made or it failed)
        error: Error message if failed
    """
    success: bool
    sent: int = 0
    status_code: int = 0
    error: str | None = None


class PushGatewayClient:
    """Client for posting message batches to the push gateway.

    This is part of the imperative shell - it handles HTTP I/O.
    """

    def __init__(
        self,
        gateway_url: str = PUSH_GATEWAY_URL,
        access_token: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize push gateway client.

        Args:
            gateway_url: Push gateway endpoint
            access_token: Optional bearer token for the gateway
            timeout: Request timeout in seconds
        """
        self.gateway_url = gateway_url
        self.access_token = access_token
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def send_batch(self, messages: list[OutboundMessage]) -> GatewayReply:
        """Send a batch of messages as a single request.

        This method performs HTTP I/O.

        Args:
            messages: Messages to deliver

        Returns:
            GatewayReply with status and decoded body

        Raises:
            DispatchFailure: On transport failure or non-success status
        """
        payload = [m.to_payload() for m in messages]

        logger.info("Sending %d messages to push gateway", len(payload))

        try:
            response = requests.post(
                self.gateway_url,
                json=payload,
                timeout=self.timeout,
                headers=self._headers(),
            )
        except requests.Timeout as e:
            raise DispatchFailure("Push gateway request timed out") from e
        except requests.RequestException as e:
            raise DispatchFailure(f"Push gateway request failed: {e}") from e

        if not response.ok:
            raise DispatchFailure(
                f"Push gateway returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            body = {}

        return GatewayReply(status_code=response.status_code, body=body)


class NotificationDispatcher:
    """Delivers a cycle's messages, tolerating gateway failure.

    Delivery is at-most-once: a failed batch is logged and dropped, and
    subscriber watermarks are never rolled back.
    """

    def __init__(self, client: PushGatewayClient | None = None) -> None:
        self.client = client or PushGatewayClient()

    def dispatch(self, messages: list[OutboundMessage]) -> DispatchResult:
        """Send all messages as one batch.

        An empty batch is a no-op and makes no network call. Failures
        are logged and reported in the result, never raised.

        Args:
            messages: Messages produced by the alert evaluation

        Returns:
            DispatchResult describing the outcome
        """
        if not messages:
            return DispatchResult(success=True, sent=0)

        try:
            reply = self.client.send_batch(messages)
        except DispatchFailure as e:
            logger.error(
                "Push dispatch failed for %d messages: %s",
                len(messages),
                str(e),
            )
            return DispatchResult(
                success=False,
                sent=0,
                status_code=e.status_code or 0,
                error=str(e),
            )

        logger.info("Push gateway accepted %d messages", len(messages))
        logger.debug("Push gateway response: %s", reply.body)

        return DispatchResult(
            success=True,
            sent=len(messages),
            status_code=reply.status_code,
        )
