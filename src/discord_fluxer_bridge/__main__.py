"""CLI entry point for the Discord ↔ Fluxer bridge.

Usage:
    python -m discord_fluxer_bridge [options]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.config
import sys
from contextlib import suppress
from pathlib import Path
from typing import Any, NoReturn

from discord_fluxer_bridge import __version__
from discord_fluxer_bridge.config import (
    BridgeConfig,
    ConfigError,
    EnvError,
    Settings,
    clear_settings_cache,
    get_settings,
    load_bridge_config,
)
from discord_fluxer_bridge.platforms import DiscordAdapter, FluxerAdapter, GatewayClient
from discord_fluxer_bridge.relay import Bridge, Dispatcher, build_routing_table
from discord_fluxer_bridge.shutdown import GracefulShutdown

# Application info
APP_NAME = "Discord ↔ Fluxer Bridge"
APP_VERSION = __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="discord-fluxer-bridge",
        description="Relay messages between Discord and Fluxer channels.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m discord_fluxer_bridge                        Run the bridge
  python -m discord_fluxer_bridge --config bridges.json  Use another mapping file
  python -m discord_fluxer_bridge --config-check         Validate config and exit
  python -m discord_fluxer_bridge --dry-run              Log payloads instead of sending
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {APP_VERSION}",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the mapping file (default: from BRIDGE_CONFIG_PATH or config.json)",
    )

    parser.add_argument(
        "--config-check",
        action="store_true",
        help="Validate configuration and exit without connecting",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level (default: from settings)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Relay messages to the log instead of the destination platform",
    )

    return parser


# Third-party loggers that chatter at INFO about every request and frame
QUIET_LOGGERS = ("httpx", "httpcore", "websockets")


def logging_config(level: str) -> dict[str, Any]:
    """Build the dictConfig for the bridge.

    Relay traces are the main output, so the default format keeps them
    short. DEBUG adds source locations.
    """
    fmt = "%(asctime)s %(levelname)-7s %(message)s"
    if level == "DEBUG":
        fmt = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d | %(message)s"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "bridge": {"format": fmt, "datefmt": "%H:%M:%S"},
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "bridge",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"level": level, "handlers": ["stdout"]},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    }


def configure_logging(level: str) -> None:
    """Install the bridge's logging configuration at the given level."""
    logging.config.dictConfig(logging_config(level))


def print_banner() -> None:
    """Print the startup banner."""
    title = f"{APP_NAME}  v{APP_VERSION}"
    rule = "─" * (len(title) + 4)
    print(f"┌{rule}┐\n│  {title}  │\n└{rule}┘")


def print_config_summary(settings: Settings, config: BridgeConfig, dry_run: bool) -> None:
    """Print a summary of the settings and active bridges."""
    summary = settings.redacted_summary()
    summary["dry_run"] = str(dry_run)
    print("Settings:")
    for key in ("discord_api", "fluxer_api", "config_path", "log_level", "dry_run"):
        print(f"  {key:<12} {summary[key]}")
    print()
    print(f"Active bridges ({len(config.mappings)}):")
    for index, mapping in enumerate(config.mappings, start=1):
        print(f"  {index}. {mapping.describe()}")
    print()


def validate_env() -> Settings | None:
    """Load environment settings.

    Returns:
        Settings instance if valid, None if invalid.
    """
    try:
        clear_settings_cache()
        return get_settings()
    except EnvError as e:
        print("Missing required environment variables:", file=sys.stderr)
        for name in e.missing:
            print(f"  - {name}", file=sys.stderr)
        return None
    except ConfigError as e:
        print("Environment validation failed:", file=sys.stderr)
        print(f"  {e}", file=sys.stderr)
        return None


def validate_config(path: Path) -> BridgeConfig | None:
    """Load and validate the mapping file.

    Returns:
        BridgeConfig if valid, None if invalid.
    """
    try:
        return load_bridge_config(path)
    except ConfigError as e:
        print("Configuration validation failed:", file=sys.stderr)
        for line in str(e).splitlines():
            print(f"  {line}", file=sys.stderr)
        return None


def log_gateway_stats(adapter: GatewayClient) -> None:
    """Log a platform connection's counters at shutdown."""
    stats = adapter.stats
    logging.getLogger(__name__).info(
        "%s gateway: %d events, %d messages, %d reconnects%s",
        adapter.name,
        stats.events_received,
        stats.messages_received,
        stats.reconnect_count,
        f" (last error: {stats.last_error})" if stats.last_error else "",
    )


def run_config_check(settings: Settings, config: BridgeConfig) -> int:
    """Print the validated configuration and return the exit code."""
    print("Configuration is valid!")
    print()
    print_config_summary(settings, config, dry_run=settings.dry_run)
    print("All checks passed. Ready to run.")
    return EXIT_SUCCESS


async def run_bridge(
    settings: Settings,
    config: BridgeConfig,
    dry_run: bool,
    shutdown_timeout: float = 10.0,
) -> int:
    """Connect both platforms and relay messages until a shutdown signal.

    Returns:
        Exit code.
    """
    logger = logging.getLogger(__name__)
    shutdown = GracefulShutdown(timeout=shutdown_timeout)

    discord = DiscordAdapter(
        settings.discord_bot_token.get_secret_value(),
        api_base=settings.discord.api_base,
        api_version=settings.discord.api_version,
    )
    fluxer = FluxerAdapter(
        settings.fluxer_bot_token.get_secret_value(),
        api_base=settings.fluxer.api_base,
        api_version=settings.fluxer.api_version,
    )
    bridge = Bridge(
        build_routing_table(config.mappings),
        discord,
        fluxer,
        Dispatcher(dry_run=dry_run),
    )

    try:
        async with shutdown:
            shutdown.on_shutdown(discord.close)
            shutdown.on_shutdown(fluxer.close)

            logger.info("Connecting to Fluxer and Discord...")
            await fluxer.connect()
            await discord.connect()

            bridge_task = asyncio.create_task(bridge.run())
            shutdown_task = asyncio.create_task(shutdown.wait())
            logger.info("Bridge is active. Press Ctrl+C to stop.")

            done, _ = await asyncio.wait(
                {bridge_task, shutdown_task},
                return_when=asyncio.FIRST_COMPLETED,
            )

            for task in (bridge_task, shutdown_task):
                if task not in done:
                    task.cancel()
                    with suppress(asyncio.CancelledError):
                        await task

            if bridge_task in done:
                # Re-raise a fatal gateway error
                bridge_task.result()

            with suppress(TimeoutError):
                await asyncio.wait_for(bridge.drain(), timeout=shutdown.timeout)

            logger.info(
                "Bridge stopped: %d relayed, %d failed",
                bridge.stats.relayed,
                bridge.stats.failed,
            )
            for adapter in (discord, fluxer):
                log_gateway_stats(adapter)

        return EXIT_SUCCESS
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.exception("Bridge failed: %s", e)
        return EXIT_ERROR


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = validate_env()
    if settings is None:
        sys.exit(EXIT_CONFIG_ERROR)

    log_level = args.log_level or settings.log_level
    configure_logging(log_level)

    config = validate_config(args.config or settings.config_path)
    if config is None:
        sys.exit(EXIT_CONFIG_ERROR)

    print_banner()

    if args.config_check:
        sys.exit(run_config_check(settings, config))

    dry_run = args.dry_run or settings.dry_run
    print_config_summary(settings, config, dry_run)

    exit_code = asyncio.run(run_bridge(settings, config, dry_run))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
