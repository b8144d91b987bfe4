"""Discord platform adapter."""

from __future__ import annotations

from typing import Any

import httpx

from discord_fluxer_bridge.platforms.gateway import DEFAULT_TIMEOUT, GatewayClient
from discord_fluxer_bridge.relay.models import Attachment, Author, InboundMessage, Platform

DISCORD_API_BASE = "https://discord.com/api"
DISCORD_API_VERSION = "10"

# Gateway intents
INTENT_GUILDS = 1 << 0
INTENT_GUILD_MESSAGES = 1 << 9
INTENT_MESSAGE_CONTENT = 1 << 15

# Message flags
FLAG_IS_CROSSPOST = 1 << 1

# First second of 2015, the epoch of Discord snowflakes (ms)
DISCORD_EPOCH_MS = 1420070400000


def snowflake_to_epoch_ms(snowflake: str) -> int:
    """Extract the creation time (epoch ms) encoded in a Discord snowflake."""
    return (int(snowflake) >> 22) + DISCORD_EPOCH_MS


def parse_discord_message(data: dict[str, Any]) -> InboundMessage:
    """Convert a Discord MESSAGE_CREATE payload into an InboundMessage."""
    message_id = str(data["id"])
    flags = int(data.get("flags") or 0)

    return InboundMessage(
        platform=Platform.DISCORD,
        message_id=message_id,
        channel_id=str(data["channel_id"]),
        author=Author.from_dict(data["author"]),
        content=data.get("content") or "",
        attachments=tuple(
            Attachment(name=str(a.get("filename") or a.get("name") or ""), url=str(a["url"]))
            for a in data.get("attachments") or []
        ),
        embeds=tuple(data.get("embeds") or []),
        created_at=snowflake_to_epoch_ms(message_id),
        is_crosspost=bool(flags & FLAG_IS_CROSSPOST),
    )


class DiscordAdapter(GatewayClient):
    """Discord bot connection.

    Subscribes to guild messages with the message-content intent so
    relayed copies carry the full text.
    """

    name = "discord"
    platform = Platform.DISCORD
    intents = INTENT_GUILDS | INTENT_GUILD_MESSAGES | INTENT_MESSAGE_CONTENT

    def __init__(
        self,
        token: str,
        *,
        api_base: str = DISCORD_API_BASE,
        api_version: str = DISCORD_API_VERSION,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            token,
            api_base=api_base,
            api_version=api_version,
            timeout=timeout,
            transport=transport,
        )

    def parse_message(self, data: dict[str, Any]) -> InboundMessage:
        return parse_discord_message(data)
