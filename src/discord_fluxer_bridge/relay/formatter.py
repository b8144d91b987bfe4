"""Text formatting helpers for relayed messages.

Timestamps are rendered with the ``<t:SECONDS:STYLE>`` markup both
platforms understand, so each reader sees the time in their own locale.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from discord_fluxer_bridge.config import TimestampFormat

if TYPE_CHECKING:
    from discord_fluxer_bridge.relay.models import Attachment

logger = logging.getLogger(__name__)

ATTACHMENTS_LABEL = "📎 Attachments:"

# Timestamp markup styles
STYLE_RELATIVE = "R"
STYLE_FULL = "F"
STYLE_SHORT = "f"


def resolve_unix_seconds(created_at: int | float | str | None) -> int | None:
    """Normalize a message creation time to whole epoch seconds.

    Args:
        created_at: Epoch milliseconds, or an ISO-8601 string.

    Returns:
        Epoch seconds (floored), or None if the value can't be resolved.
    """
    if created_at is None or isinstance(created_at, bool):
        return None

    if isinstance(created_at, (int, float)):
        if not math.isfinite(created_at):
            return None
        return math.floor(created_at / 1000)

    try:
        parsed = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        logger.debug("Unparseable timestamp: %r", created_at)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return math.floor(parsed.timestamp())


def timestamp_markup(unix_seconds: int, style: str) -> str:
    """Render ``<t:SECONDS:STYLE>``."""
    return f"<t:{unix_seconds}:{style}>"


def format_timestamp_suffix(
    created_at: int | float | str | None,
    timestamp_format: TimestampFormat,
) -> str:
    """Build the timestamp suffix appended to relayed content.

    Returns an empty string for ``none`` or when no timestamp resolves,
    otherwise a newline followed by an italic timestamp marker.
    """
    if timestamp_format is TimestampFormat.NONE:
        return ""

    unix_seconds = resolve_unix_seconds(created_at)
    if unix_seconds is None:
        return ""

    style = STYLE_RELATIVE if timestamp_format is TimestampFormat.RELATIVE else STYLE_FULL
    return f"\n*{timestamp_markup(unix_seconds, style)}*"


def append_attachments(base_content: str, attachments: Sequence[Attachment]) -> str:
    """Append a block of attachment links to the content."""
    if not attachments:
        return base_content
    links = "\n".join(f"[{a.name}]({a.url})" for a in attachments)
    return f"{base_content}\n\n{ATTACHMENTS_LABEL}\n{links}"
