"""Unit tests for slides JSON handling and import escaping."""

import pytest

from postdraft.models.slides import (
    SlideDeck,
    escape_special_characters,
    import_slides,
    load_slides,
    parse_slides,
    read_slide_import,
)
from postdraft.services.exceptions import MalformedSlidesData


class TestEscaping:
    """Test markup character escaping on import."""

    def test_escapes_angle_brackets_and_braces(self):
        assert escape_special_characters("<b>Hi</b>") == "\\<b>Hi\\</b>"
        assert escape_special_characters("{name}") == "\\{name}"

    def test_plain_text_unchanged(self):
        assert escape_special_characters("Plain text > 3") == "Plain text > 3"

    def test_import_escapes_slides_and_content(self):
        slides, content = import_slides(["<i>one</i>", "two"], "{intro}")

        assert slides == ["\\<i>one\\</i>", "two"]
        assert content == "\\{intro}"


class TestParsing:
    """Test persisted slides parsing."""

    def test_parse_list_of_strings(self):
        assert parse_slides('["a","b"]') == ["a", "b"]

    @pytest.mark.parametrize("raw", [None, ""])
    def test_missing_slides_are_empty(self, raw):
        assert parse_slides(raw) == []

    @pytest.mark.parametrize("raw", ["not json", '{"a": 1}', "[1, 2]"])
    def test_malformed_slides_raise(self, raw):
        with pytest.raises(MalformedSlidesData) as exc_info:
            parse_slides(raw)

        assert exc_info.value.raw == raw

    def test_load_falls_back_to_empty(self):
        assert load_slides("[oops") == []


class TestSlideDeck:
    """Test index-addressed slide editing."""

    def test_add_update_delete(self):
        deck = SlideDeck.from_json('["first"]')

        index = deck.add("second")
        deck.update(0, "FIRST")
        removed = deck.delete(0)

        assert index == 1
        assert removed == "FIRST"
        assert deck.slides == ["second"]
        assert len(deck) == 1
        assert deck[0] == "second"

    def test_to_json_is_compact_and_keeps_unicode(self):
        deck = SlideDeck(["café", "b"])

        assert deck.to_json() == '["café","b"]'

    def test_json_round_trip_of_stored_value(self):
        raw = '["one","two"]'

        assert SlideDeck.from_json(raw).to_json() == raw

    def test_replace_all(self):
        deck = SlideDeck(["a"])

        deck.replace_all(("x", "y"))

        assert deck.slides == ["x", "y"]


class TestSlideImportFile:
    """Test reading a slides export file."""

    def test_reads_slides_and_content(self, tmp_path):
        path = tmp_path / "deck.json"
        path.write_text('{"slides": ["<b>One</b>", "Two"], "content": "Intro"}')

        data = read_slide_import(path)

        assert data.slides == ["<b>One</b>", "Two"]
        assert data.content == "Intro"

    def test_missing_fields_default_to_empty(self, tmp_path):
        path = tmp_path / "deck.json"
        path.write_text("{}")

        data = read_slide_import(path)

        assert data.slides == []
        assert data.content == ""

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"slides": [1]}'])
    def test_bad_file_raises(self, tmp_path, raw):
        path = tmp_path / "deck.json"
        path.write_text(raw)

        with pytest.raises(MalformedSlidesData, match="deck.json is not a slides export"):
            read_slide_import(path)
