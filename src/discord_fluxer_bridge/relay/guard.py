"""Loop prevention for relayed messages.

Bot-authored messages are never relayed, otherwise the bridge's own copies
on one platform would be picked up and sent back to the other. The one
exception is a Discord crosspost (a follow/announcement re-broadcast) on a
mapping that opts in with ``allowCrossposts``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from discord_fluxer_bridge.relay.models import FluxerRoute, InboundMessage


def should_relay_to_fluxer(message: InboundMessage, route: FluxerRoute) -> bool:
    """Decide whether a Discord message may be relayed to Fluxer."""
    if message.author.bot and not (message.is_crosspost and route.allow_crossposts):
        return False
    return not message.is_empty


def should_relay_to_discord(message: InboundMessage) -> bool:
    """Decide whether a Fluxer message may be relayed to Discord."""
    if message.author.bot:
        return False
    return not message.is_empty
