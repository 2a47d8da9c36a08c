"""Lucene query construction for MusicBrainz search endpoints."""

import re
from typing import Iterable, Tuple

# Every character with meaning in the Lucene query grammar, including the
# escape character itself. "&&" and "||" are covered by escaping each char.
_LUCENE_SPECIAL = re.compile(r'([+\-&|!(){}\[\]^"~*?:\\/])')


def escape_lucene(value: str) -> str:
    """Prefix each Lucene special character with a backslash."""
    return _LUCENE_SPECIAL.sub(r"\\\1", value)


def field_clause(name: str, value: str) -> str:
    """Render a quoted field clause such as artist:"Foo \\- Bar"."""
    return f'{name}:"{escape_lucene(value)}"'


def build_search_query(fields: Iterable[Tuple[str, str, bool]]) -> str:
    """
    Join field clauses with AND.

    Args:
        fields: (field_name, value, required) tuples in output order.
            Optional fields with a blank value are left out; required
            fields are always emitted, even when blank.

    Returns:
        Query string for the `query` parameter of a search request.
    """
    clauses = []
    for name, value, required in fields:
        value = value or ""
        if not required and not value.strip():
            continue
        clauses.append(field_clause(name, value))
    return " AND ".join(clauses)


def recording_query(artist: str, title: str, album: str = "") -> str:
    """Query for the recording search endpoint."""
    return build_search_query([
        ("artist", artist, True),
        ("recording", title, True),
        ("release", album, False),
    ])


def release_group_query(artist: str, album: str) -> str:
    """Query for the release-group search endpoint."""
    return build_search_query([
        ("artist", artist, True),
        ("releasegroup", album, True),
    ])
