"""Fluxer platform adapter.

Fluxer exposes a Discord-compatible API at ``api.fluxer.app``. It has no
crosspost concept and reports message creation time as an ISO-8601
``timestamp`` field.
"""

from __future__ import annotations

from typing import Any

import httpx

from discord_fluxer_bridge.platforms.gateway import DEFAULT_TIMEOUT, GatewayClient
from discord_fluxer_bridge.relay.models import Attachment, Author, InboundMessage, Platform

FLUXER_API_BASE = "https://api.fluxer.app"
FLUXER_API_VERSION = "1"


def parse_fluxer_message(data: dict[str, Any]) -> InboundMessage:
    """Convert a Fluxer MESSAGE_CREATE payload into an InboundMessage."""
    return InboundMessage(
        platform=Platform.FLUXER,
        message_id=str(data.get("id") or ""),
        channel_id=str(data["channel_id"]),
        author=Author.from_dict(data["author"]),
        content=data.get("content") or "",
        attachments=tuple(
            Attachment(name=str(a.get("filename") or a.get("name") or ""), url=str(a["url"]))
            for a in data.get("attachments") or []
        ),
        embeds=tuple(data.get("embeds") or []),
        created_at=data.get("timestamp"),
    )


class FluxerAdapter(GatewayClient):
    """Fluxer bot connection."""

    name = "fluxer"
    platform = Platform.FLUXER
    intents = 0

    def __init__(
        self,
        token: str,
        *,
        api_base: str = FLUXER_API_BASE,
        api_version: str = FLUXER_API_VERSION,
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
        return parse_fluxer_message(data)
