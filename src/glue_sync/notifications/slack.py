"""
Chat notifications for job outcomes.

Delivery is best effort: a notification that cannot be posted is logged and
dropped, it never interrupts replication.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import aiohttp

from ..config import NotificationConfig
from ..exceptions import NotificationError, ValidationError

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Destination for human-readable outcome messages."""

    @abstractmethod
    async def send(self, message: str) -> None:
        """Deliver a message, raising NotificationError on failure."""

    async def notify(self, message: str) -> bool:
        """Deliver a message, logging instead of raising. Returns True on success."""
        try:
            await self.send(message)
            return True
        except NotificationError as e:
            logger.warning(f"Failed to send notification: {e}")
            return False

    async def close(self) -> None:
        """Release any resources held by the notifier."""


class NullNotifier(Notifier):
    """Used when no webhook is configured; messages only reach the log."""

    async def send(self, message: str) -> None:
        logger.debug(f"Notification (not delivered): {message}")


class SlackNotifier(Notifier):
    """Posts messages to a Slack incoming webhook."""

    def __init__(self, config: NotificationConfig):
        if not config.webhook_url:
            raise ValidationError("Slack webhook URL is required")
        if not config.webhook_url.startswith(("https://", "http://")):
            raise ValidationError("Slack webhook URL must start with http:// or https://")

        self.config = config
        self.webhook_url = config.webhook_url
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._session

    def build_payload(self, message: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"text": message}
        if self.config.channel:
            payload["channel"] = self.config.channel
        if self.config.username:
            payload["username"] = self.config.username
        return payload

    async def send(self, message: str) -> None:
        session = await self._get_session()
        try:
            async with session.post(self.webhook_url, json=self.build_payload(message)) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise NotificationError(
                        f"Slack webhook returned HTTP {response.status}",
                        status_code=response.status,
                        response_body=body,
                    )
        except aiohttp.ClientError as e:
            raise NotificationError(f"Network error posting to Slack: {e}") from e
        except asyncio.TimeoutError as e:
            raise NotificationError("Slack webhook request timed out") from e

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


def build_notifier(config: NotificationConfig) -> Notifier:
    if config.enabled:
        return SlackNotifier(config)
    return NullNotifier()
