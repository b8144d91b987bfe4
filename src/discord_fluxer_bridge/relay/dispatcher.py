"""Delivery of relayed messages to the destination platform."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from discord_fluxer_bridge.platforms.base import RateLimitError, SendError

if TYPE_CHECKING:
    from discord_fluxer_bridge.platforms.base import PlatformAdapter
    from discord_fluxer_bridge.relay.models import OutboundPayload

logger = logging.getLogger(__name__)


class Dispatcher:
    """Sends payloads through a platform adapter and logs the outcome.

    A failed send is logged and abandoned. Nothing is retried, including
    rate-limited sends, whose retry-after hint is only reported.
    """

    def __init__(self, *, dry_run: bool = False) -> None:
        """Initialize the dispatcher.

        Args:
            dry_run: Log payloads instead of sending them.
        """
        self.dry_run = dry_run

    async def send(
        self,
        adapter: PlatformAdapter,
        channel_id: str,
        payload: OutboundPayload,
        *,
        author: str = "?",
    ) -> bool:
        """Send a payload to a channel.

        Args:
            adapter: Destination platform adapter.
            channel_id: Destination channel id.
            payload: Payload to send.
            author: Original author's username, for log context.

        Returns:
            True if the message was delivered (or dry-run), False otherwise.
        """
        platform = adapter.platform.display_name

        if self.dry_run:
            logger.info(
                "[dry-run] → %s #%s: %s",
                platform,
                channel_id,
                json.dumps(payload.to_dict(), ensure_ascii=False),
            )
            return True

        try:
            await adapter.send_message(channel_id, payload)
        except RateLimitError as e:
            logger.error(
                "Failed to send to %s #%s (from %s): %s; retry after %s",
                platform,
                channel_id,
                author,
                e,
                e.retry_after if e.retry_after is not None else "unknown",
            )
            return False
        except SendError as e:
            logger.error(
                "Failed to send to %s #%s (from %s): %s", platform, channel_id, author, e
            )
            return False

        logger.info("✓ → %s #%s", platform, channel_id)
        return True
