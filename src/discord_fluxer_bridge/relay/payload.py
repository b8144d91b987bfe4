"""Outbound payload construction.

A mapping's formatting profile selects one of three presentations:

- avatar: the message becomes an embed whose author line carries the
  original username and avatar. Content moves into the embed description
  and any embeds on the original message follow it.
- username: plain text prefixed with ``**username**: ``.
- plain: the content alone.

Discord renders an embed's structured ``timestamp`` field in the footer,
Fluxer does not. Avatar embeds sent to Fluxer therefore carry the time as
an inline ``-# <t:...:f>`` line at the end of the description instead.
"""

from __future__ import annotations

import math
import time
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from discord_fluxer_bridge.relay.formatter import (
    STYLE_SHORT,
    format_timestamp_suffix,
    resolve_unix_seconds,
    timestamp_markup,
)
from discord_fluxer_bridge.relay.models import OutboundPayload, RelayDirection

if TYPE_CHECKING:
    from discord_fluxer_bridge.config import FormattingProfile

# Transparent wide image that keeps avatar embeds from collapsing to a narrow column
EMBED_FORCE_WIDTH_URL = "https://groupsync.network/assets/embedforcewidth.png"


def iso_timestamp(unix_seconds: int) -> str:
    """Format epoch seconds as an ISO-8601 UTC string with millisecond precision."""
    moment = datetime.fromtimestamp(unix_seconds, tz=UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def build_avatar_embed(
    username: str,
    avatar_url: str,
    full_content: str,
    unix_seconds: int,
    direction: RelayDirection,
) -> dict[str, Any]:
    """Build the embed that carries the author's name and avatar."""
    embed: dict[str, Any] = {
        "author": {
            "name": username,
            "icon_url": avatar_url,
        },
    }

    if direction is RelayDirection.TO_DISCORD:
        if full_content:
            embed["description"] = full_content
        embed["timestamp"] = iso_timestamp(unix_seconds)
    else:
        marker = f"-# {timestamp_markup(unix_seconds, STYLE_SHORT)}"
        embed["description"] = f"{full_content}\n{marker}" if full_content else marker

    embed["image"] = {"url": EMBED_FORCE_WIDTH_URL}
    return embed


def build_payload(
    *,
    username: str,
    avatar_url: str,
    content: str,
    existing_embeds: Sequence[dict[str, Any]],
    formatting: FormattingProfile,
    created_at: int | str | None,
    direction: RelayDirection,
) -> OutboundPayload:
    """Build the payload for a relayed message.

    Args:
        username: Original author's username.
        avatar_url: Resolved avatar URL of the original author.
        content: Message content, attachment links already appended.
        existing_embeds: Embeds from the original message, converted.
        formatting: The route's formatting profile.
        created_at: Original creation time (epoch ms or ISO-8601).
        direction: Which platform the payload is sent to.

    Returns:
        The OutboundPayload to send.
    """
    full_content = content + format_timestamp_suffix(created_at, formatting.timestamp_format)

    if formatting.include_avatar:
        unix_seconds = resolve_unix_seconds(created_at)
        if unix_seconds is None:
            unix_seconds = math.floor(time.time())

        avatar_embed = build_avatar_embed(
            username, avatar_url, full_content, unix_seconds, direction
        )
        return OutboundPayload(
            content="",
            embeds=(avatar_embed, *existing_embeds),
        )

    prefix = f"**{username}**: " if formatting.include_username else ""
    return OutboundPayload(
        content=prefix + full_content,
        embeds=tuple(existing_embeds) if existing_embeds else None,
    )
