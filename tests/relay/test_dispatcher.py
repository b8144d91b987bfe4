"""Tests for the dispatcher."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from discord_fluxer_bridge.platforms.base import RateLimitError, SendError
from discord_fluxer_bridge.relay.dispatcher import Dispatcher
from discord_fluxer_bridge.relay.models import OutboundPayload, Platform


@pytest.fixture
def payload() -> OutboundPayload:
    return OutboundPayload(content="**alice**: hi")


@pytest.fixture
def mock_fluxer_adapter() -> MagicMock:
    """Create a mock Fluxer adapter."""
    adapter = MagicMock()
    adapter.name = "fluxer"
    adapter.platform = Platform.FLUXER
    adapter.send_message = AsyncMock(return_value=None)
    return adapter


class TestDispatcher:
    """Tests for Dispatcher.send."""

    async def test_send_success(
        self,
        mock_fluxer_adapter: MagicMock,
        payload: OutboundPayload,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A delivered payload reports success."""
        dispatcher = Dispatcher()

        with caplog.at_level(logging.INFO):
            result = await dispatcher.send(mock_fluxer_adapter, "X", payload, author="alice")

        assert result is True
        mock_fluxer_adapter.send_message.assert_awaited_once_with("X", payload)
        assert "✓ → Fluxer #X" in caplog.text

    async def test_send_error_not_retried(
        self,
        mock_fluxer_adapter: MagicMock,
        payload: OutboundPayload,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A failed send is logged once and abandoned."""
        mock_fluxer_adapter.send_message.side_effect = SendError("fluxer rejected message: 403")
        dispatcher = Dispatcher()

        result = await dispatcher.send(mock_fluxer_adapter, "X", payload, author="alice")

        assert result is False
        assert mock_fluxer_adapter.send_message.await_count == 1
        assert "Failed to send to Fluxer #X (from alice)" in caplog.text
        assert "403" in caplog.text

    async def test_rate_limit_surfaces_retry_after(
        self,
        mock_fluxer_adapter: MagicMock,
        payload: OutboundPayload,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Rate limits log the retry-after hint without retrying."""
        mock_fluxer_adapter.send_message.side_effect = RateLimitError(
            "fluxer rate limited", retry_after=2.5
        )
        dispatcher = Dispatcher()

        result = await dispatcher.send(mock_fluxer_adapter, "X", payload, author="alice")

        assert result is False
        assert mock_fluxer_adapter.send_message.await_count == 1
        assert "retry after 2.5" in caplog.text

    async def test_rate_limit_without_hint(
        self,
        mock_fluxer_adapter: MagicMock,
        payload: OutboundPayload,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        mock_fluxer_adapter.send_message.side_effect = RateLimitError("fluxer rate limited")

        result = await Dispatcher().send(mock_fluxer_adapter, "X", payload)

        assert result is False
        assert "retry after unknown" in caplog.text

    async def test_dry_run_does_not_send(
        self,
        mock_fluxer_adapter: MagicMock,
        payload: OutboundPayload,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Dry-run logs the payload instead of sending."""
        dispatcher = Dispatcher(dry_run=True)

        with caplog.at_level(logging.INFO):
            result = await dispatcher.send(mock_fluxer_adapter, "X", payload)

        assert result is True
        mock_fluxer_adapter.send_message.assert_not_awaited()
        assert "[dry-run]" in caplog.text
        assert "**alice**: hi" in caplog.text
