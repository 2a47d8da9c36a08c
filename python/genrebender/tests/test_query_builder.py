"""Tests for query_builder.py Lucene escaping and query assembly."""

import re

import pytest

from genrebender.query_builder import (
    build_search_query, escape_lucene, field_clause, recording_query,
    release_group_query
)


def unescape(value: str) -> str:
    """Undo backslash escaping the way a Lucene parser reads it."""
    return re.sub(r"\\(.)", r"\1", value)


def parse_clause(clause: str):
    """Split a single field:"value" clause back into (field, literal)."""
    match = re.fullmatch(r'(\w+):"((?:\\.|[^"\\])*)"', clause)
    assert match is not None, f"not a single quoted clause: {clause}"
    return match.group(1), unescape(match.group(2))


class TestEscapeLucene:
    """Tests for escape_lucene function."""

    def test_plain_text_unchanged(self):
        """Should leave text without special characters alone."""
        assert escape_lucene("Boards of Canada") == "Boards of Canada"

    def test_escapes_quote(self):
        """Should escape double quotes."""
        assert escape_lucene('12" Mix') == '12\\" Mix'

    def test_escapes_backslash_once(self):
        """Should escape the escape character without double-escaping others."""
        assert escape_lucene("a\\b") == "a\\\\b"
        assert escape_lucene("a+b") == "a\\+b"

    def test_escapes_boolean_operators(self):
        """Should neutralize && and ||."""
        assert escape_lucene("Tom && Jerry") == "Tom \\&\\& Jerry"
        assert escape_lucene("this || that") == "this \\|\\| that"

    @pytest.mark.parametrize("value", [
        "AC/DC",
        "Sunn O)))",
        "What?",
        "Title: Subtitle",
        "*NSYNC",
        "[bracket] {brace} (paren)",
        "~tilde^caret!",
        'say "hi" \\ bye',
        "-minus +plus",
    ])
    def test_round_trips_as_single_literal(self, value):
        """Escaped clause should parse back to the original literal."""
        name, literal = parse_clause(field_clause("artist", value))
        assert name == "artist"
        assert literal == value


class TestBuildSearchQuery:
    """Tests for build_search_query function."""

    def test_joins_fields_with_and(self):
        """Should join clauses with AND in the given order."""
        query = build_search_query([
            ("artist", "Foo", True),
            ("recording", "Bar", True),
        ])
        assert query == 'artist:"Foo" AND recording:"Bar"'

    def test_omits_blank_optional_field(self):
        """Should drop optional fields that are empty or whitespace."""
        query = build_search_query([
            ("artist", "Foo", True),
            ("release", "   ", False),
        ])
        assert query == 'artist:"Foo"'

    def test_keeps_blank_required_field(self):
        """Should emit required fields even when empty."""
        query = build_search_query([
            ("artist", "", True),
            ("recording", "Bar", True),
        ])
        assert query == 'artist:"" AND recording:"Bar"'

    def test_empty_field_list(self):
        """Should return empty string for no fields."""
        assert build_search_query([]) == ""


class TestEntityQueries:
    """Tests for recording_query and release_group_query."""

    def test_recording_query_with_album(self):
        """Should include release clause when album is known."""
        assert recording_query("Foo", "Bar", "Baz") == (
            'artist:"Foo" AND recording:"Bar" AND release:"Baz"'
        )

    def test_recording_query_without_album(self):
        """Should omit release clause when album is empty."""
        assert recording_query("Foo", "Bar") == 'artist:"Foo" AND recording:"Bar"'

    def test_release_group_query(self):
        """Should use the releasegroup field."""
        assert release_group_query("AC/DC", "Back in Black") == (
            'artist:"AC\\/DC" AND releasegroup:"Back in Black"'
        )
