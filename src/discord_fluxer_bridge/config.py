"""Configuration management for the Discord ↔ Fluxer bridge.

Two sources feed the bridge at startup:

- Environment variables (bot tokens, log level, API endpoints), loaded and
  validated with Pydantic Settings. A ``.env`` file is honoured.
- The mapping file (``config.json`` by default), a JSON document describing
  which channels are bridged, in which direction, and how relayed messages
  are presented.

Both are validated before any connection is attempted; failures surface as
:class:`EnvError` or :class:`ConfigError`.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.json")

# Environment variables that must be present and non-empty
REQUIRED_ENV_VARS = ("DISCORD_BOT_TOKEN", "FLUXER_BOT_TOKEN")

EXAMPLE_CONFIG: dict[str, Any] = {
    "mappings": [
        {
            "discordId": "123456789012345678",
            "fluxerId": "987654321098765432",
            "direction": "both",
            "label": "my-channel",
            "allowCrossposts": True,
            "formatting": {
                "includeUsername": True,
                "includeAvatar": True,
                "timestampFormat": "none",
            },
        }
    ],
    "defaultFormatting": {
        "includeUsername": False,
        "includeAvatar": False,
        "timestampFormat": "none",
    },
}


class ConfigError(Exception):
    """Raised when the mapping file is missing, unparseable or structurally invalid."""


class EnvError(Exception):
    """Raised when required environment variables are missing."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required environment variables: {', '.join(missing)}")


# ============================================================================
# Environment settings
# ============================================================================


class DiscordSettings(BaseSettings):
    """Discord REST/gateway endpoint settings."""

    model_config = SettingsConfigDict(env_prefix="DISCORD_")

    api_base: str = Field(
        default="https://discord.com/api",
        alias="DISCORD_API_BASE",
        description="Discord REST API base URL",
    )
    api_version: str = Field(
        default="10",
        alias="DISCORD_API_VERSION",
        description="Discord REST/gateway API version",
    )

    @field_validator("api_base")
    @classmethod
    def validate_api_base(cls, v: str) -> str:
        """Validate API base URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("DISCORD_API_BASE must be an HTTP(S) URL")
        return v.rstrip("/")


class FluxerSettings(BaseSettings):
    """Fluxer REST/gateway endpoint settings."""

    model_config = SettingsConfigDict(env_prefix="FLUXER_")

    api_base: str = Field(
        default="https://api.fluxer.app",
        alias="FLUXER_API_BASE",
        description="Fluxer REST API base URL",
    )
    api_version: str = Field(
        default="1",
        alias="FLUXER_API_VERSION",
        description="Fluxer REST/gateway API version",
    )

    @field_validator("api_base")
    @classmethod
    def validate_api_base(cls, v: str) -> str:
        """Validate API base URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("FLUXER_API_BASE must be an HTTP(S) URL")
        return v.rstrip("/")


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from discord_fluxer_bridge.config import get_settings

        settings = get_settings()
        print(settings.config_path)
        print(settings.log_level)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    fluxer: FluxerSettings = Field(default_factory=FluxerSettings)

    discord_bot_token: SecretStr = Field(
        alias="DISCORD_BOT_TOKEN",
        description="Discord bot token",
    )
    fluxer_bot_token: SecretStr = Field(
        alias="FLUXER_BOT_TOKEN",
        description="Fluxer bot token",
    )
    config_path: Path = Field(
        default=DEFAULT_CONFIG_PATH,
        alias="BRIDGE_CONFIG_PATH",
        description="Path to the channel mapping file",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    dry_run: bool = Field(
        default=False,
        alias="DRY_RUN",
        description="Build payloads but don't send them",
    )

    @field_validator("discord_bot_token", "fluxer_bot_token")
    @classmethod
    def validate_token(cls, v: SecretStr) -> SecretStr:
        """Reject blank tokens."""
        if not v.get_secret_value().strip():
            raise ValueError("token must not be empty")
        return v

    def redacted_summary(self) -> dict[str, str]:
        """Get a summary of settings with secrets redacted."""
        return {
            "discord_api": f"{self.discord.api_base}/v{self.discord.api_version}",
            "fluxer_api": f"{self.fluxer.api_base}/v{self.fluxer.api_version}",
            "discord_bot_token": "(set)",
            "fluxer_bot_token": "(set)",
            "config_path": str(self.config_path),
            "log_level": self.log_level,
            "dry_run": str(self.dry_run),
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Raises:
        EnvError: If a required token is missing or blank.
        ConfigError: If any other environment value is invalid.
    """
    try:
        return Settings()
    except ValidationError as e:
        missing = [
            str(error["loc"][0])
            for error in e.errors()
            if error["loc"] and error["loc"][0] in REQUIRED_ENV_VARS
        ]
        if missing:
            raise EnvError(list(dict.fromkeys(missing))) from e
        raise ConfigError(_describe_validation_error(e)) from e


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()


# ============================================================================
# Mapping file
# ============================================================================


class Direction(str, Enum):
    """Which way a mapping relays messages."""

    DISCORD_TO_FLUXER = "d2f"
    FLUXER_TO_DISCORD = "f2d"
    BOTH = "both"

    @property
    def arrow(self) -> str:
        """Arrow used in the startup summary."""
        return {"d2f": "→", "f2d": "←", "both": "↔"}[self.value]


class TimestampFormat(str, Enum):
    """How a message's creation time is rendered in the relayed copy."""

    NONE = "none"
    RELATIVE = "relative"
    ABSOLUTE = "absolute"


VALID_DIRECTIONS = tuple(d.value for d in Direction)
VALID_TIMESTAMP_FORMATS = tuple(t.value for t in TimestampFormat)


class FormattingProfile(BaseModel):
    """Presentation choices applied to every message relayed by a mapping."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    include_username: bool = Field(default=False, alias="includeUsername")
    include_avatar: bool = Field(default=False, alias="includeAvatar")
    timestamp_format: TimestampFormat = Field(
        default=TimestampFormat.NONE, alias="timestampFormat"
    )

    def describe(self) -> str:
        """One-line description for the startup summary."""
        return (
            f"username={str(self.include_username).lower()}, "
            f"avatar={str(self.include_avatar).lower()}, "
            f"ts={self.timestamp_format.value}"
        )


def _coerce_timestamp_format(formatting: dict[str, Any], where: str) -> dict[str, Any]:
    """Replace an unknown timestampFormat with ``none``, logging a warning."""
    value = formatting.get("timestampFormat", TimestampFormat.NONE.value)
    if value not in VALID_TIMESTAMP_FORMATS:
        logger.warning(
            '%s: invalid timestampFormat "%s", falling back to "none"', where, value
        )
        return {**formatting, "timestampFormat": TimestampFormat.NONE.value}
    return formatting


def _mapping_name(info: ValidationInfo) -> str:
    context = info.context or {}
    index = context.get("index", "?")
    label = info.data.get("label")
    return f'mappings[{index}]' + (f' ("{label}")' if label else "")


class Mapping(BaseModel):
    """One configured channel pair.

    Validation is lenient where the bridge can pick a safe default
    (direction, timestamp format) and strict where it cannot (channel ids).
    Pass ``context={"index": i, "defaults": {...}}`` so warnings name the
    entry and formatting falls back to the configured defaults.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    label: str | None = None
    discord_id: str = Field(alias="discordId")
    fluxer_id: str = Field(alias="fluxerId")
    direction: Direction = Direction.DISCORD_TO_FLUXER
    allow_crossposts: bool = Field(default=False, alias="allowCrossposts")
    formatting: FormattingProfile = Field(default=None, validate_default=True)

    @field_validator("discord_id", "fluxer_id", mode="before")
    @classmethod
    def validate_channel_id(cls, v: Any) -> str:
        """Channel ids must be non-empty strings; surrounding whitespace is dropped."""
        if not isinstance(v, str) or not v.strip():
            raise ValueError("must be a non-empty channel id string")
        return v.strip()

    @field_validator("direction", mode="before")
    @classmethod
    def coerce_direction(cls, v: Any, info: ValidationInfo) -> Any:
        """Unknown directions fall back to Discord → Fluxer."""
        if v is None:
            return Direction.DISCORD_TO_FLUXER
        if isinstance(v, Direction):
            return v
        if v not in VALID_DIRECTIONS:
            logger.warning(
                '%s: invalid direction "%s", falling back to "d2f"', _mapping_name(info), v
            )
            return Direction.DISCORD_TO_FLUXER
        return v

    @field_validator("allow_crossposts", mode="before")
    @classmethod
    def coerce_allow_crossposts(cls, v: Any) -> bool:
        """Missing or null means crossposts are not relayed."""
        return bool(v) if v is not None else False

    @field_validator("formatting", mode="before")
    @classmethod
    def merge_formatting(cls, v: Any, info: ValidationInfo) -> Any:
        """Overlay the mapping's formatting on the configured defaults."""
        if isinstance(v, FormattingProfile):
            return v
        context = info.context or {}
        defaults = context.get("defaults") or {}
        if v is None:
            v = {}
        elif not isinstance(v, dict):
            raise ValueError("formatting must be an object")
        merged = {**defaults, **v}
        return _coerce_timestamp_format(merged, _mapping_name(info))

    def describe(self) -> str:
        """One-line description for the startup summary."""
        label = f" [{self.label}]" if self.label else ""
        xpost = ", crossposts=on" if self.allow_crossposts else ""
        return (
            f"Discord {self.discord_id} {self.direction.arrow} Fluxer {self.fluxer_id}"
            f"{label} ({self.formatting.describe()}{xpost})"
        )


class BridgeConfig(BaseModel):
    """The validated mapping file."""

    model_config = ConfigDict(frozen=True)

    mappings: tuple[Mapping, ...]
    default_formatting: FormattingProfile = Field(default_factory=FormattingProfile)


def _describe_validation_error(e: ValidationError, prefix: str = "") -> str:
    lines = []
    for error in e.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        lines.append(f"{prefix}{'.' if prefix and field else ''}{field}: {error['msg']}")
    return "\n".join(lines)


def parse_bridge_config(raw: Any) -> BridgeConfig:
    """Validate an already-decoded mapping document.

    Args:
        raw: The decoded JSON document.

    Returns:
        A fully populated BridgeConfig.

    Raises:
        ConfigError: If the document is structurally invalid.
    """
    if not isinstance(raw, dict):
        raise ConfigError("config must be a JSON object")

    entries = raw.get("mappings")
    if not isinstance(entries, list) or not entries:
        raise ConfigError('config must have a non-empty "mappings" array')

    raw_defaults = raw.get("defaultFormatting")
    if raw_defaults is None:
        raw_defaults = {}
    elif not isinstance(raw_defaults, dict):
        raise ConfigError('"defaultFormatting" must be an object')
    defaults = _coerce_timestamp_format(raw_defaults, "defaultFormatting")

    try:
        default_formatting = FormattingProfile.model_validate(defaults)
    except ValidationError as e:
        raise ConfigError(_describe_validation_error(e, "defaultFormatting")) from e

    mappings = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ConfigError(f"mappings[{index}]: must be an object")
        try:
            mapping = Mapping.model_validate(
                entry, context={"index": index, "defaults": defaults}
            )
        except ValidationError as e:
            raise ConfigError(_describe_validation_error(e, f"mappings[{index}]")) from e
        mappings.append(mapping)

    return BridgeConfig(mappings=tuple(mappings), default_formatting=default_formatting)


def load_bridge_config(path: Path | str = DEFAULT_CONFIG_PATH) -> BridgeConfig:
    """Load and validate the mapping file.

    Args:
        path: Location of the JSON mapping file.

    Returns:
        A fully populated BridgeConfig.

    Raises:
        ConfigError: If the file is missing, not valid JSON, or invalid.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(
            f"{config_path} not found. Create it with content like:\n"
            f"{json.dumps(EXAMPLE_CONFIG, indent=2)}"
        )

    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"{config_path} is not valid JSON: {e}") from e
    except OSError as e:
        raise ConfigError(f"{config_path} could not be read: {e}") from e

    return parse_bridge_config(raw)
