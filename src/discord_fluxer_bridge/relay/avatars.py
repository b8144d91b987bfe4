"""Avatar URL resolution for message authors.

Discord CDN:
    https://cdn.discordapp.com/avatars/{user_id}/{hash}.{png|gif}?size=256
    https://cdn.discordapp.com/embed/avatars/{index}.png  (no custom avatar)

Fluxer CDN:
    https://fluxerusercontent.com/avatars/{user_id}/{hash}.{webp|gif}?size=256
    https://fluxerstatic.com/avatars/{index}.png  (index = user_id % 6)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from discord_fluxer_bridge.relay.models import Platform

if TYPE_CHECKING:
    from discord_fluxer_bridge.relay.models import Author

AVATAR_SIZE = 256
ANIMATED_HASH_PREFIX = "a_"

DISCORD_CDN = "https://cdn.discordapp.com"
DISCORD_AVATAR_URL = DISCORD_CDN + "/avatars/{user_id}/{hash}.{ext}?size={size}"
DISCORD_DEFAULT_AVATAR_URL = DISCORD_CDN + "/embed/avatars/{index}.png"

FLUXER_AVATAR_URL = "https://fluxerusercontent.com/avatars/{user_id}/{hash}.{ext}?size={size}"
FLUXER_DEFAULT_AVATAR_URL = "https://fluxerstatic.com/avatars/{index}.png"
FLUXER_DEFAULT_AVATAR_COUNT = 6


def is_animated(avatar_hash: str) -> bool:
    """Return True if the avatar hash refers to an animated image."""
    return avatar_hash.startswith(ANIMATED_HASH_PREFIX)


def discord_default_avatar_index(author: Author) -> int:
    """Index of Discord's built-in avatar for users without a custom one.

    Migrated usernames (discriminator "0") use the snowflake's timestamp
    bits; legacy tags use the discriminator.
    """
    if author.discriminator in (None, "", "0"):
        return (int(author.id) >> 22) % 6
    return int(author.discriminator) % 5


def discord_avatar_url(author: Author) -> str:
    """Build a Discord avatar URL, static PNG unless the avatar is animated."""
    if author.avatar:
        ext = "gif" if is_animated(author.avatar) else "png"
        return DISCORD_AVATAR_URL.format(
            user_id=author.id, hash=author.avatar, ext=ext, size=AVATAR_SIZE
        )
    return DISCORD_DEFAULT_AVATAR_URL.format(index=discord_default_avatar_index(author))


def fluxer_avatar_url(author: Author) -> str:
    """Build a Fluxer avatar URL, WebP unless the avatar is animated."""
    if author.avatar:
        ext = "gif" if is_animated(author.avatar) else "webp"
        return FLUXER_AVATAR_URL.format(
            user_id=author.id, hash=author.avatar, ext=ext, size=AVATAR_SIZE
        )
    index = int(author.id) % FLUXER_DEFAULT_AVATAR_COUNT
    return FLUXER_DEFAULT_AVATAR_URL.format(index=index)


def resolve_avatar_url(author: Author, platform: Platform) -> str:
    """Resolve the avatar URL for an author on the platform they posted from."""
    if platform is Platform.DISCORD:
        return discord_avatar_url(author)
    return fluxer_avatar_url(author)
