"""Gateway and REST client for Discord-compatible chat APIs.

Discord and Fluxer speak the same protocol: a JSON websocket gateway for
inbound events and a REST API for posting messages. This module implements
the shared parts; the platform modules supply endpoints, intents and the
message parser.

Gateway opcodes handled:

    0  DISPATCH         READY, MESSAGE_CREATE
    1  HEARTBEAT        server-requested heartbeat
    2  IDENTIFY         sent after HELLO
    7  RECONNECT        reconnect and re-identify
    9  INVALID_SESSION  reconnect and re-identify
    10 HELLO            carries the heartbeat interval
    11 HEARTBEAT_ACK
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
import time
from collections.abc import AsyncIterator
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx
import websockets
from websockets.asyncio.client import ClientConnection

from discord_fluxer_bridge.platforms.base import RateLimitError, SendError

if TYPE_CHECKING:
    from discord_fluxer_bridge.relay.models import InboundMessage, OutboundPayload, Platform

logger = logging.getLogger(__name__)

# Constants
DEFAULT_TIMEOUT = 10.0  # seconds
DEFAULT_MAX_RECONNECT_DELAY = 30.0  # seconds
DEFAULT_INITIAL_RECONNECT_DELAY = 1.0  # seconds
USER_AGENT = "DiscordFluxerBridge/1.0"

# Gateway opcodes
OP_DISPATCH = 0
OP_HEARTBEAT = 1
OP_IDENTIFY = 2
OP_RECONNECT = 7
OP_INVALID_SESSION = 9
OP_HELLO = 10
OP_HEARTBEAT_ACK = 11

# Close codes after which reconnecting cannot help
FATAL_CLOSE_CODES = frozenset({4004, 4010, 4011, 4012, 4013, 4014})


class ConnectionState(Enum):
    """Gateway connection states."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


@dataclass
class GatewayStats:
    """Statistics about a gateway connection."""

    events_received: int = 0
    messages_received: int = 0
    reconnect_count: int = 0
    connected_since: float | None = None
    last_error: str | None = None


class GatewayError(Exception):
    """Raised when the gateway can't be reached or rejects the session."""


class _ReconnectRequested(Exception):
    """Internal signal that the server asked for a fresh session."""


class GatewayClient:
    """Connection to a Discord-compatible gateway and REST API.

    Subclasses set ``name``, ``platform`` and ``intents`` and implement
    :meth:`parse_message`.

    Example:
        >>> adapter = DiscordAdapter(token="...")
        >>> await adapter.connect()
        >>> async for message in adapter.messages():
        ...     print(message.author.username, message.content)

    Attributes:
        state: Current connection state.
        stats: Statistics about the connection.
    """

    name: str = "gateway"
    platform: Platform
    intents: int = 0

    def __init__(
        self,
        token: str,
        *,
        api_base: str,
        api_version: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_reconnect_delay: float = DEFAULT_MAX_RECONNECT_DELAY,
        initial_reconnect_delay: float = DEFAULT_INITIAL_RECONNECT_DELAY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            token: Bot token.
            api_base: REST API base URL, without the version segment.
            api_version: API version used for REST and the gateway.
            timeout: HTTP request timeout in seconds.
            max_reconnect_delay: Maximum delay between reconnection attempts.
            initial_reconnect_delay: Initial delay for reconnection backoff.
            transport: Optional httpx transport (used in tests).
        """
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._api_version = api_version
        self._timeout = timeout
        self._max_reconnect_delay = max_reconnect_delay
        self._initial_reconnect_delay = initial_reconnect_delay
        self._transport = transport

        self._http: httpx.AsyncClient | None = None
        self._gateway_url: str | None = None
        self._ws: ClientConnection | None = None
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._heartbeat_acked = True
        self._sequence: int | None = None
        self._running = False

        self._state = ConnectionState.DISCONNECTED
        self._stats = GatewayStats()

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def stats(self) -> GatewayStats:
        """Connection statistics."""
        return self._stats

    @property
    def api_url(self) -> str:
        """Versioned REST API base URL."""
        return f"{self._api_base}/v{self._api_version}"

    def _set_state(self, new_state: ConnectionState) -> None:
        if self._state != new_state:
            logger.debug(
                "%s gateway state: %s -> %s", self.name, self._state.value, new_state.value
            )
            self._state = new_state

    def parse_message(self, data: dict[str, Any]) -> InboundMessage:
        """Convert a MESSAGE_CREATE payload into an InboundMessage."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # REST
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self.api_url,
                headers={
                    "Authorization": f"Bot {self._token}",
                    "User-Agent": USER_AGENT,
                },
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http

    async def connect(self) -> None:
        """Open the REST session and resolve the gateway URL.

        Raises:
            GatewayError: If the gateway URL can't be fetched.
        """
        client = self._client()
        try:
            response = await client.get("/gateway/bot")
            response.raise_for_status()
            url = response.json()["url"]
        except (httpx.HTTPError, KeyError, ValueError) as e:
            self._stats.last_error = str(e)
            raise GatewayError(f"Failed to resolve {self.name} gateway: {e}") from e

        self._gateway_url = f"{url.rstrip('/')}/?v={self._api_version}&encoding=json"
        logger.info("Resolved %s gateway: %s", self.name, self._gateway_url)

    async def send_message(self, channel_id: str, payload: OutboundPayload) -> None:
        """Post a message to a channel.

        Raises:
            RateLimitError: If the platform answered with HTTP 429.
            SendError: On any other failure.
        """
        client = self._client()
        try:
            response = await client.post(
                f"/channels/{channel_id}/messages",
                json=payload.to_dict(),
            )
        except httpx.HTTPError as e:
            raise SendError(f"{self.name} request failed: {e}") from e

        if response.status_code == 429:
            raise RateLimitError(
                f"{self.name} rate limited",
                retry_after=_retry_after(response),
            )
        if response.is_error:
            raise SendError(
                f"{self.name} rejected message: {response.status_code} {response.text}",
                status_code=response.status_code,
            )

    # ------------------------------------------------------------------
    # Gateway
    # ------------------------------------------------------------------

    def _identify_payload(self) -> dict[str, Any]:
        return {
            "op": OP_IDENTIFY,
            "d": {
                "token": self._token,
                "intents": self.intents,
                "properties": {
                    "os": "linux",
                    "browser": "discord-fluxer-bridge",
                    "device": "discord-fluxer-bridge",
                },
            },
        }

    async def _open_session(self) -> ClientConnection:
        """Connect, wait for HELLO, start heartbeating and identify."""
        if self._gateway_url is None:
            await self.connect()
        assert self._gateway_url is not None

        self._set_state(ConnectionState.CONNECTING)
        try:
            ws = await websockets.connect(self._gateway_url, max_size=None)
            hello = json.loads(await ws.recv())
        except Exception as e:
            self._stats.last_error = str(e)
            raise GatewayError(f"Failed to connect to {self.name} gateway: {e}") from e

        if hello.get("op") != OP_HELLO:
            await ws.close()
            raise GatewayError(f"Expected HELLO from {self.name}, got op {hello.get('op')}")

        interval = hello["d"]["heartbeat_interval"] / 1000
        self._sequence = None
        self._heartbeat_acked = True
        self._heartbeat_task = asyncio.create_task(self._heartbeat(ws, interval))

        await ws.send(json.dumps(self._identify_payload()))

        self._set_state(ConnectionState.CONNECTED)
        self._stats.connected_since = time.time()
        return ws

    async def _heartbeat(self, ws: ClientConnection, interval: float) -> None:
        """Send heartbeats; close the socket if the last one went unacknowledged."""
        try:
            await asyncio.sleep(interval * random.random())
            while True:
                if not self._heartbeat_acked:
                    logger.warning("%s heartbeat not acknowledged, reconnecting", self.name)
                    await ws.close(code=4000)
                    return
                self._heartbeat_acked = False
                await ws.send(json.dumps({"op": OP_HEARTBEAT, "d": self._sequence}))
                await asyncio.sleep(interval)
        except websockets.ConnectionClosed:
            logger.debug("%s heartbeat stopped: connection closed", self.name)

    async def _stop_heartbeat(self) -> None:
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._heartbeat_task
            self._heartbeat_task = None

    async def _handle_frame(self, ws: ClientConnection, raw: str | bytes) -> InboundMessage | None:
        """Process one gateway frame, returning a message if it carried one."""
        frame = json.loads(raw)
        op = frame.get("op")
        self._stats.events_received += 1

        if op == OP_DISPATCH:
            if frame.get("s") is not None:
                self._sequence = frame["s"]
            event = frame.get("t")
            data = frame.get("d") or {}

            if event == "READY":
                user = data.get("user", {})
                logger.info(
                    "%s bot connected as %s",
                    self.platform.display_name,
                    user.get("username"),
                )
            elif event == "MESSAGE_CREATE":
                self._stats.messages_received += 1
                return self.parse_message(data)

        elif op == OP_HEARTBEAT:
            await ws.send(json.dumps({"op": OP_HEARTBEAT, "d": self._sequence}))
        elif op == OP_HEARTBEAT_ACK:
            self._heartbeat_acked = True
        elif op in (OP_RECONNECT, OP_INVALID_SESSION):
            raise _ReconnectRequested(f"server sent op {op}")

        return None

    async def messages(self) -> AsyncIterator[InboundMessage]:
        """Yield inbound messages, reconnecting with exponential backoff.

        Runs until :meth:`close` is called.

        Raises:
            GatewayError: If the session is rejected for good (bad token,
                disallowed intents).
        """
        self._running = True
        delay = self._initial_reconnect_delay

        while self._running:
            try:
                self._ws = await self._open_session()
                delay = self._initial_reconnect_delay
                async for raw in self._ws:
                    try:
                        message = await self._handle_frame(self._ws, raw)
                    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                        logger.warning("Invalid %s gateway frame: %s", self.name, e)
                        continue
                    if message is not None:
                        yield message
            except _ReconnectRequested as e:
                logger.info("%s gateway requested reconnect: %s", self.name, e)
            except websockets.ConnectionClosed as e:
                code = e.rcvd.code if e.rcvd is not None else None
                if code in FATAL_CLOSE_CODES:
                    self._running = False
                    raise GatewayError(f"{self.name} gateway closed with code {code}") from e
                logger.warning("%s connection closed: %s", self.name, e)
            except GatewayError as e:
                logger.error("%s", e)
            finally:
                await self._stop_heartbeat()
                if self._ws is not None:
                    with suppress(Exception):
                        await self._ws.close()
                    self._ws = None
                self._set_state(ConnectionState.DISCONNECTED)

            if not self._running:
                break

            self._set_state(ConnectionState.RECONNECTING)
            self._stats.reconnect_count += 1
            logger.info("Reconnecting to %s in %.1f seconds...", self.name, delay)
            await asyncio.sleep(delay)
            delay = min(delay * 2, self._max_reconnect_delay)

    async def close(self) -> None:
        """Disconnect from the gateway and close the REST session."""
        logger.info("Closing %s connection...", self.name)
        self._running = False
        await self._stop_heartbeat()

        if self._ws is not None:
            try:
                await self._ws.close()
            except Exception as e:
                logger.debug("Error closing %s websocket: %s", self.name, e)
            finally:
                self._ws = None

        if self._http is not None:
            await self._http.aclose()
            self._http = None

        self._set_state(ConnectionState.DISCONNECTED)


def _retry_after(response: httpx.Response) -> float | None:
    """Extract the retry-after hint from a 429 response."""
    header = response.headers.get("retry-after")
    if header is not None:
        with suppress(ValueError):
            return float(header)
    try:
        body = response.json()
    except ValueError:
        return None
    value = body.get("retry_after") if isinstance(body, dict) else None
    return float(value) if isinstance(value, (int, float)) else None
