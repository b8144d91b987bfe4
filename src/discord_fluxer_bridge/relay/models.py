"""Data models for the relay engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from discord_fluxer_bridge.config import FormattingProfile


class Platform(Enum):
    """Chat platforms the bridge connects."""

    DISCORD = "discord"
    FLUXER = "fluxer"

    @property
    def display_name(self) -> str:
        """Human-readable platform name."""
        return self.value.capitalize()


class RelayDirection(Enum):
    """Destination of a single relay attempt."""

    TO_FLUXER = "toFluxer"
    TO_DISCORD = "toDiscord"

    @property
    def source(self) -> Platform:
        """Platform the message came from."""
        return Platform.DISCORD if self is RelayDirection.TO_FLUXER else Platform.FLUXER

    @property
    def destination(self) -> Platform:
        """Platform the message is sent to."""
        return Platform.FLUXER if self is RelayDirection.TO_FLUXER else Platform.DISCORD


@dataclass(frozen=True)
class Author:
    """The author of an inbound message.

    Attributes:
        id: Platform user id (a snowflake string).
        username: Display username.
        avatar: Avatar hash, or None when the user has no custom avatar.
        discriminator: Legacy Discord discriminator ("0" for migrated users).
        bot: Whether the account is a bot.
    """

    id: str
    username: str
    avatar: str | None = None
    discriminator: str | None = None
    bot: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Author:
        """Create an Author from a gateway user object."""
        discriminator = data.get("discriminator")
        return cls(
            id=str(data["id"]),
            username=str(data.get("username") or ""),
            avatar=data.get("avatar") or None,
            discriminator=str(discriminator) if discriminator is not None else None,
            bot=bool(data.get("bot", False)),
        )


@dataclass(frozen=True)
class Attachment:
    """A file attached to a message."""

    name: str
    url: str


@dataclass(frozen=True)
class InboundMessage:
    """A message received from one of the platforms.

    Attributes:
        platform: Platform the message was received on.
        message_id: Platform message id.
        channel_id: Channel the message was posted in.
        author: Message author.
        content: Raw text content.
        attachments: Attached files, in original order.
        embeds: Raw embed objects, in original order.
        created_at: Epoch milliseconds or an ISO-8601 string.
        is_crosspost: Whether the message is a crosspost of a followed channel.
    """

    platform: Platform
    message_id: str
    channel_id: str
    author: Author
    content: str = ""
    attachments: tuple[Attachment, ...] = ()
    embeds: tuple[dict[str, Any], ...] = ()
    created_at: int | str | None = None
    is_crosspost: bool = False

    @property
    def is_empty(self) -> bool:
        """True if there is nothing worth relaying."""
        return not self.content and not self.embeds and not self.attachments

    def preview(self, length: int = 50) -> str:
        """Short content preview for log lines."""
        return self.content[:length]


@dataclass(frozen=True)
class OutboundPayload:
    """The message body handed to a platform's send operation."""

    content: str
    embeds: tuple[dict[str, Any], ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON body of a create-message request."""
        body: dict[str, Any] = {"content": self.content}
        if self.embeds is not None:
            body["embeds"] = [
                {key: value for key, value in embed.items() if value is not None}
                for embed in self.embeds
            ]
        return body


@dataclass(frozen=True)
class FluxerRoute:
    """Where a Discord channel's messages are relayed on Fluxer."""

    fluxer_channel_id: str
    formatting: FormattingProfile
    allow_crossposts: bool = False


@dataclass(frozen=True)
class DiscordRoute:
    """Where a Fluxer channel's messages are relayed on Discord."""

    discord_channel_id: str
    formatting: FormattingProfile


@dataclass
class RelayStats:
    """Counters for relay outcomes."""

    received: int = 0
    ignored: int = 0
    dropped: int = 0
    relayed: int = 0
    failed: int = 0
