"""Normalization of MusicBrainz genre and tag lists."""

from typing import Dict, Iterable, List

MIN_TAG_VOTES = 2


def normalize_genres(raw_genres: Iterable[dict]) -> List[str]:
    """
    Clean a genre list.

    Names are trimmed and blanks dropped. Duplicates are removed
    case-insensitively, keeping the casing and position of the first one.

    Args:
        raw_genres: Genre objects as returned by the API ({"name", "count"})

    Returns:
        Unique genre names in first-seen order.
    """
    seen = set()
    genres = []
    for genre in raw_genres:
        name = (genre.get("name") or "").strip()
        key = name.lower()
        if not name or key in seen:
            continue
        seen.add(key)
        genres.append(name)
    return genres


def normalize_tags(raw_tags: Iterable[dict]) -> List[str]:
    """
    Sum votes per tag name (case-insensitive) and keep popular ones.

    Args:
        raw_tags: Tag objects as returned by the API ({"name", "count"})

    Returns:
        Lowercased names whose summed count is at least MIN_TAG_VOTES.
    """
    votes: Dict[str, int] = {}
    for tag in raw_tags:
        name = (tag.get("name") or "").strip().lower()
        if not name:
            continue
        votes[name] = votes.get(name, 0) + int(tag.get("count") or 0)
    return [name for name, count in votes.items() if count >= MIN_TAG_VOTES]
