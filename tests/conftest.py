"""Shared fixtures for bridge tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from discord_fluxer_bridge.config import FormattingProfile, TimestampFormat
from discord_fluxer_bridge.relay.models import Attachment, Author, InboundMessage, Platform

# 2023-11-14T22:13:20Z
SAMPLE_UNIX_SECONDS = 1700000000
SAMPLE_EPOCH_MS = SAMPLE_UNIX_SECONDS * 1000
SAMPLE_ISO = "2023-11-14T22:13:20.000000+00:00"


@pytest.fixture
def alice() -> Author:
    """A human author with a static avatar."""
    return Author(id="4194304", username="alice", avatar="abc123", discriminator="0")


@pytest.fixture
def make_message(alice: Author) -> Callable[..., InboundMessage]:
    """Factory for inbound messages with sensible defaults."""

    def _make(
        platform: Platform = Platform.DISCORD,
        *,
        channel_id: str = "A",
        content: str = "hi",
        author: Author | None = None,
        attachments: tuple[Attachment, ...] = (),
        embeds: tuple[dict[str, Any], ...] = (),
        created_at: int | str | None = None,
        is_crosspost: bool = False,
    ) -> InboundMessage:
        if created_at is None:
            created_at = SAMPLE_EPOCH_MS if platform is Platform.DISCORD else SAMPLE_ISO
        return InboundMessage(
            platform=platform,
            message_id="1",
            channel_id=channel_id,
            author=author or alice,
            content=content,
            attachments=attachments,
            embeds=embeds,
            created_at=created_at,
            is_crosspost=is_crosspost,
        )

    return _make


@pytest.fixture
def plain_profile() -> FormattingProfile:
    """Profile with every presentation option off."""
    return FormattingProfile()


@pytest.fixture
def username_profile() -> FormattingProfile:
    """Profile that prefixes the username."""
    return FormattingProfile(include_username=True)


@pytest.fixture
def avatar_profile() -> FormattingProfile:
    """Profile that wraps messages in an avatar embed."""
    return FormattingProfile(include_username=True, include_avatar=True)


@pytest.fixture
def relative_profile() -> FormattingProfile:
    """Profile with username prefix and relative timestamps."""
    return FormattingProfile(include_username=True, timestamp_format=TimestampFormat.RELATIVE)
