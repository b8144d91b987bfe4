"""Tests for timestamp and attachment formatting."""

import pytest

from discord_fluxer_bridge.config import TimestampFormat
from discord_fluxer_bridge.relay.formatter import (
    append_attachments,
    format_timestamp_suffix,
    resolve_unix_seconds,
)
from discord_fluxer_bridge.relay.models import Attachment

UNIX = 1700000000


class TestResolveUnixSeconds:
    """Tests for timestamp normalization."""

    def test_epoch_millis_floored(self) -> None:
        assert resolve_unix_seconds(UNIX * 1000 + 999) == UNIX

    @pytest.mark.parametrize(
        "value",
        [
            "2023-11-14T22:13:20Z",
            "2023-11-14T22:13:20.500Z",
            "2023-11-14T22:13:20.000000+00:00",
            "2023-11-14T23:13:20+01:00",
        ],
    )
    def test_iso_strings(self, value: str) -> None:
        assert resolve_unix_seconds(value) == UNIX

    def test_naive_iso_is_utc(self) -> None:
        assert resolve_unix_seconds("2023-11-14T22:13:20") == UNIX

    @pytest.mark.parametrize(
        "value", [None, "", "not a date", float("nan"), float("inf"), float("-inf")]
    )
    def test_unresolvable(self, value: str | float | None) -> None:
        assert resolve_unix_seconds(value) is None


class TestFormatTimestampSuffix:
    """Tests for the timestamp suffix."""

    def test_none_mode_is_empty(self) -> None:
        assert format_timestamp_suffix(UNIX * 1000, TimestampFormat.NONE) == ""

    def test_relative(self) -> None:
        assert format_timestamp_suffix(UNIX * 1000, TimestampFormat.RELATIVE) == (
            f"\n*<t:{UNIX}:R>*"
        )

    def test_absolute(self) -> None:
        assert format_timestamp_suffix("2023-11-14T22:13:20Z", TimestampFormat.ABSOLUTE) == (
            f"\n*<t:{UNIX}:F>*"
        )

    @pytest.mark.parametrize("mode", list(TimestampFormat))
    def test_unresolvable_timestamp_is_empty(self, mode: TimestampFormat) -> None:
        assert format_timestamp_suffix(None, mode) == ""
        assert format_timestamp_suffix("garbage", mode) == ""


class TestAppendAttachments:
    """Tests for the attachment block."""

    def test_no_attachments_unchanged(self) -> None:
        assert append_attachments("hello", ()) == "hello"

    def test_attachments_appended_in_order(self) -> None:
        attachments = (Attachment("a.png", "u1"), Attachment("b.png", "u2"))

        assert append_attachments("hello", attachments) == (
            "hello\n\n📎 Attachments:\n[a.png](u1)\n[b.png](u2)"
        )

    def test_attachments_with_empty_content(self) -> None:
        """Attachment-only messages still get the dedicated block."""
        attachments = (Attachment("a.png", "u1"), Attachment("b.png", "u2"))

        result = append_attachments("", attachments)

        assert result == "\n\n📎 Attachments:\n[a.png](u1)\n[b.png](u2)"
        assert result.index("[a.png](u1)") < result.index("[b.png](u2)")
