"""Bridge orchestration: route, filter, transform and dispatch messages.

Each inbound message is handled in its own task. Nothing is shared between
relay attempts except the routing table, which is never mutated after
startup.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from discord_fluxer_bridge.relay.avatars import resolve_avatar_url
from discord_fluxer_bridge.relay.embeds import convert_embeds
from discord_fluxer_bridge.relay.formatter import append_attachments
from discord_fluxer_bridge.relay.guard import should_relay_to_discord, should_relay_to_fluxer
from discord_fluxer_bridge.relay.models import RelayDirection, RelayStats
from discord_fluxer_bridge.relay.payload import build_payload

if TYPE_CHECKING:
    from discord_fluxer_bridge.config import FormattingProfile
    from discord_fluxer_bridge.platforms.base import PlatformAdapter
    from discord_fluxer_bridge.relay.dispatcher import Dispatcher
    from discord_fluxer_bridge.relay.models import InboundMessage, OutboundPayload
    from discord_fluxer_bridge.relay.routing import RoutingTable

logger = logging.getLogger(__name__)

MessageHandler = Callable[["InboundMessage"], Awaitable[bool]]


def build_relay_payload(
    message: InboundMessage,
    formatting: FormattingProfile,
    direction: RelayDirection,
) -> OutboundPayload:
    """Transform an inbound message into the payload for the other platform.

    Deterministic for a given message and profile, as long as the message
    carries a creation time.
    """
    return build_payload(
        username=message.author.username,
        avatar_url=resolve_avatar_url(message.author, message.platform),
        content=append_attachments(message.content, message.attachments),
        existing_embeds=convert_embeds(message.embeds),
        formatting=formatting,
        created_at=message.created_at,
        direction=direction,
    )


class Bridge:
    """Relays messages between a Discord and a Fluxer adapter.

    Example:
        >>> bridge = Bridge(routing, discord, fluxer, Dispatcher())
        >>> await bridge.run()  # Blocks until both adapters stop
    """

    def __init__(
        self,
        routing: RoutingTable,
        discord: PlatformAdapter,
        fluxer: PlatformAdapter,
        dispatcher: Dispatcher,
    ) -> None:
        """Initialize the bridge.

        Args:
            routing: Channel routing table.
            discord: Discord adapter.
            fluxer: Fluxer adapter.
            dispatcher: Dispatcher used for all sends.
        """
        self.routing = routing
        self.discord = discord
        self.fluxer = fluxer
        self.dispatcher = dispatcher
        self.stats = RelayStats()
        self._tasks: set[asyncio.Task[None]] = set()

    async def handle_discord_message(self, message: InboundMessage) -> bool:
        """Relay a Discord message to Fluxer if a route allows it.

        Returns:
            True if a payload was delivered.
        """
        self.stats.received += 1
        route = self.routing.route_to_fluxer(message.channel_id)
        if route is None:
            self.stats.ignored += 1
            return False
        if not should_relay_to_fluxer(message, route):
            self.stats.dropped += 1
            return False

        logger.info(
            "%s[Discord %s → Fluxer %s] %s: %s",
            "[CROSSPOST] " if message.is_crosspost else "",
            message.channel_id,
            route.fluxer_channel_id,
            message.author.username,
            message.preview(),
        )

        payload = build_relay_payload(message, route.formatting, RelayDirection.TO_FLUXER)
        return await self._dispatch(self.fluxer, route.fluxer_channel_id, payload, message)

    async def handle_fluxer_message(self, message: InboundMessage) -> bool:
        """Relay a Fluxer message to Discord if a route allows it.

        Returns:
            True if a payload was delivered.
        """
        self.stats.received += 1
        route = self.routing.route_to_discord(message.channel_id)
        if route is None:
            self.stats.ignored += 1
            return False
        if not should_relay_to_discord(message):
            self.stats.dropped += 1
            return False

        logger.info(
            "[Fluxer %s → Discord %s] %s: %s",
            message.channel_id,
            route.discord_channel_id,
            message.author.username,
            message.preview(),
        )

        payload = build_relay_payload(message, route.formatting, RelayDirection.TO_DISCORD)
        return await self._dispatch(self.discord, route.discord_channel_id, payload, message)

    async def _dispatch(
        self,
        adapter: PlatformAdapter,
        channel_id: str,
        payload: OutboundPayload,
        message: InboundMessage,
    ) -> bool:
        sent = await self.dispatcher.send(
            adapter, channel_id, payload, author=message.author.username
        )
        if sent:
            self.stats.relayed += 1
        else:
            self.stats.failed += 1
        return sent

    async def _relay_safely(self, handler: MessageHandler, message: InboundMessage) -> None:
        try:
            await handler(message)
        except Exception:
            self.stats.failed += 1
            logger.exception(
                "Error relaying %s message %s", message.platform.value, message.message_id
            )

    def _spawn(self, handler: MessageHandler, message: InboundMessage) -> None:
        task = asyncio.create_task(self._relay_safely(handler, message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _consume(self, adapter: PlatformAdapter, handler: MessageHandler) -> None:
        async for message in adapter.messages():
            self._spawn(handler, message)

    async def run(self) -> None:
        """Consume both adapters' message streams until they end."""
        await asyncio.gather(
            self._consume(self.discord, self.handle_discord_message),
            self._consume(self.fluxer, self.handle_fluxer_message),
        )

    async def drain(self) -> None:
        """Wait for relay attempts that are still in flight."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
