"""Platform adapters - Gateway and REST connections to Discord and Fluxer."""

from discord_fluxer_bridge.platforms.base import PlatformAdapter, RateLimitError, SendError
from discord_fluxer_bridge.platforms.discord import DiscordAdapter
from discord_fluxer_bridge.platforms.fluxer import FluxerAdapter
from discord_fluxer_bridge.platforms.gateway import ConnectionState, GatewayClient, GatewayError

__all__ = [
    "ConnectionState",
    "DiscordAdapter",
    "FluxerAdapter",
    "GatewayClient",
    "GatewayError",
    "PlatformAdapter",
    "RateLimitError",
    "SendError",
]
