"""Relay engine - Routing, loop prevention and payload transformation."""

from discord_fluxer_bridge.relay.models import (
    Attachment,
    Author,
    DiscordRoute,
    FluxerRoute,
    InboundMessage,
    OutboundPayload,
    Platform,
    RelayDirection,
    RelayStats,
)
from discord_fluxer_bridge.relay.routing import RoutingTable, build_routing_table
from discord_fluxer_bridge.relay.dispatcher import Dispatcher
from discord_fluxer_bridge.relay.bridge import Bridge, build_relay_payload

__all__ = [
    "Attachment",
    "Author",
    "Bridge",
    "DiscordRoute",
    "Dispatcher",
    "FluxerRoute",
    "InboundMessage",
    "OutboundPayload",
    "Platform",
    "RelayDirection",
    "RelayStats",
    "RoutingTable",
    "build_relay_payload",
    "build_routing_table",
]
