"""Embed conversion between platforms."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

# Embed fields both platforms accept on create-message
EMBED_FIELDS = (
    "title",
    "description",
    "url",
    "color",
    "fields",
    "footer",
    "timestamp",
    "image",
    "thumbnail",
    "author",
)


def convert_embed(embed: dict[str, Any]) -> dict[str, Any]:
    """Project one embed onto the shared field whitelist.

    Fields missing from the source embed are left out.
    """
    return {key: embed[key] for key in EMBED_FIELDS if embed.get(key) is not None}


def convert_embeds(embeds: Iterable[dict[str, Any]]) -> tuple[dict[str, Any], ...]:
    """Convert a sequence of embeds, preserving order."""
    return tuple(convert_embed(embed) for embed in embeds)
