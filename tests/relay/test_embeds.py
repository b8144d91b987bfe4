"""Tests for embed conversion."""

from discord_fluxer_bridge.relay.embeds import EMBED_FIELDS, convert_embed, convert_embeds


class TestConvertEmbed:
    """Tests for convert_embed."""

    def test_whitelist_only(self) -> None:
        """Fields outside the whitelist are dropped."""
        embed = {
            "type": "rich",
            "title": "News",
            "video": {"url": "https://example.com/v.mp4"},
            "provider": {"name": "Example"},
            "color": 0xFF0000,
        }

        assert convert_embed(embed) == {"title": "News", "color": 0xFF0000}

    def test_absent_fields_omitted(self) -> None:
        """Missing or null fields are left out rather than substituted."""
        assert convert_embed({"description": "body", "url": None}) == {"description": "body"}

    def test_all_fields_preserved(self) -> None:
        embed = {field: f"value-{field}" for field in EMBED_FIELDS}

        assert convert_embed(embed) == embed


class TestConvertEmbeds:
    """Tests for convert_embeds."""

    def test_preserves_order(self) -> None:
        embeds = [{"title": "first"}, {"title": "second"}, {"title": "third"}]

        result = convert_embeds(embeds)

        assert [e["title"] for e in result] == ["first", "second", "third"]

    def test_empty(self) -> None:
        assert convert_embeds([]) == ()
