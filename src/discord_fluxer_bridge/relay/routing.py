"""Channel routing table built from the configured mappings."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

from discord_fluxer_bridge.config import Direction
from discord_fluxer_bridge.relay.models import DiscordRoute, FluxerRoute

if TYPE_CHECKING:
    from collections.abc import Mapping as ReadOnlyMap

    from discord_fluxer_bridge.config import Mapping


@dataclass(frozen=True)
class RoutingTable:
    """Read-only channel lookup for both relay directions.

    Attributes:
        to_fluxer: Discord channel id -> route toward Fluxer.
        to_discord: Fluxer channel id -> route toward Discord.
    """

    to_fluxer: ReadOnlyMap[str, FluxerRoute]
    to_discord: ReadOnlyMap[str, DiscordRoute]

    def route_to_fluxer(self, discord_channel_id: str) -> FluxerRoute | None:
        """Return the Fluxer route for a Discord channel, or None."""
        return self.to_fluxer.get(discord_channel_id)

    def route_to_discord(self, fluxer_channel_id: str) -> DiscordRoute | None:
        """Return the Discord route for a Fluxer channel, or None."""
        return self.to_discord.get(fluxer_channel_id)


def build_routing_table(mappings: Iterable[Mapping]) -> RoutingTable:
    """Build the routing table from validated mappings.

    A channel that appears as the source of more than one mapping keeps
    the route of the last mapping that names it.

    Args:
        mappings: Validated channel mappings, in configuration order.

    Returns:
        An immutable RoutingTable.
    """
    to_fluxer: dict[str, FluxerRoute] = {}
    to_discord: dict[str, DiscordRoute] = {}

    for mapping in mappings:
        if mapping.direction in (Direction.DISCORD_TO_FLUXER, Direction.BOTH):
            to_fluxer[mapping.discord_id] = FluxerRoute(
                fluxer_channel_id=mapping.fluxer_id,
                formatting=mapping.formatting,
                allow_crossposts=mapping.allow_crossposts,
            )
        if mapping.direction in (Direction.FLUXER_TO_DISCORD, Direction.BOTH):
            to_discord[mapping.fluxer_id] = DiscordRoute(
                discord_channel_id=mapping.discord_id,
                formatting=mapping.formatting,
            )

    return RoutingTable(
        to_fluxer=MappingProxyType(to_fluxer),
        to_discord=MappingProxyType(to_discord),
    )
