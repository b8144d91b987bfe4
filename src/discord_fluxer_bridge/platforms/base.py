"""Platform adapter contract and send errors."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from discord_fluxer_bridge.relay.models import InboundMessage, OutboundPayload, Platform


class SendError(Exception):
    """Raised when a platform rejects or fails to deliver a message.

    Attributes:
        status_code: HTTP status of the rejected request, if any.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(SendError):
    """Raised when a platform answers with HTTP 429.

    Attributes:
        retry_after: Seconds the platform asked us to wait, if given.
    """

    def __init__(self, message: str, *, retry_after: float | None = None) -> None:
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class PlatformAdapter(Protocol):
    """Protocol for a connection to one chat platform."""

    name: str
    platform: Platform

    async def connect(self) -> None:
        """Open the REST session and resolve the gateway endpoint."""
        ...

    def messages(self) -> AsyncIterator[InboundMessage]:
        """Yield inbound messages until the adapter is closed."""
        ...

    async def send_message(self, channel_id: str, payload: OutboundPayload) -> None:
        """Post a message. Raises SendError or RateLimitError on failure."""
        ...

    async def close(self) -> None:
        """Disconnect from the platform."""
        ...
