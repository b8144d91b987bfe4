"""Tests for loop prevention."""

from collections.abc import Callable

import pytest

from discord_fluxer_bridge.config import FormattingProfile
from discord_fluxer_bridge.relay.guard import should_relay_to_discord, should_relay_to_fluxer
from discord_fluxer_bridge.relay.models import (
    Attachment,
    Author,
    FluxerRoute,
    InboundMessage,
    Platform,
)

BOT = Author(id="1", username="relay-bot", bot=True)


def route(allow_crossposts: bool = False) -> FluxerRoute:
    return FluxerRoute(
        fluxer_channel_id="X",
        formatting=FormattingProfile(),
        allow_crossposts=allow_crossposts,
    )


class TestShouldRelayToFluxer:
    """Tests for the Discord -> Fluxer leg."""

    def test_human_message_passes(self, make_message: Callable[..., InboundMessage]) -> None:
        """Regular user messages are relayed."""
        assert should_relay_to_fluxer(make_message(), route()) is True

    @pytest.mark.parametrize("allow_crossposts", [True, False])
    def test_bot_message_dropped(
        self, make_message: Callable[..., InboundMessage], allow_crossposts: bool
    ) -> None:
        """Bot messages that aren't crossposts are dropped regardless of config."""
        message = make_message(author=BOT, is_crosspost=False)

        assert should_relay_to_fluxer(message, route(allow_crossposts)) is False

    def test_crosspost_allowed(self, make_message: Callable[..., InboundMessage]) -> None:
        """Bot crossposts pass when the route allows them."""
        message = make_message(author=BOT, is_crosspost=True)

        assert should_relay_to_fluxer(message, route(allow_crossposts=True)) is True

    def test_crosspost_not_allowed(self, make_message: Callable[..., InboundMessage]) -> None:
        """Bot crossposts are dropped when the route doesn't allow them."""
        message = make_message(author=BOT, is_crosspost=True)

        assert should_relay_to_fluxer(message, route(allow_crossposts=False)) is False

    def test_empty_message_dropped(self, make_message: Callable[..., InboundMessage]) -> None:
        """Messages with no content, embeds or attachments are dropped."""
        assert should_relay_to_fluxer(make_message(content=""), route()) is False

    def test_attachment_only_passes(self, make_message: Callable[..., InboundMessage]) -> None:
        """An attachment alone is worth relaying."""
        message = make_message(content="", attachments=(Attachment("a.png", "u1"),))

        assert should_relay_to_fluxer(message, route()) is True

    def test_embed_only_passes(self, make_message: Callable[..., InboundMessage]) -> None:
        """An embed alone is worth relaying."""
        message = make_message(content="", embeds=({"title": "News"},))

        assert should_relay_to_fluxer(message, route()) is True


class TestShouldRelayToDiscord:
    """Tests for the Fluxer -> Discord leg."""

    def test_human_message_passes(self, make_message: Callable[..., InboundMessage]) -> None:
        """Regular user messages are relayed."""
        assert should_relay_to_discord(make_message(Platform.FLUXER)) is True

    def test_bot_message_always_dropped(
        self, make_message: Callable[..., InboundMessage]
    ) -> None:
        """Bot messages never cross from Fluxer, crosspost flag or not."""
        assert should_relay_to_discord(make_message(Platform.FLUXER, author=BOT)) is False
        assert (
            should_relay_to_discord(make_message(Platform.FLUXER, author=BOT, is_crosspost=True))
            is False
        )

    def test_empty_message_dropped(self, make_message: Callable[..., InboundMessage]) -> None:
        """Empty messages are dropped."""
        assert should_relay_to_discord(make_message(Platform.FLUXER, content="")) is False
