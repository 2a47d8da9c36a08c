"""Scoring of catalog search candidates against local metadata."""

from datetime import date
from typing import Iterable, List, Optional, Sequence

from genrebender.models import Query, RecordingCandidate, ReleaseGroupCandidate

TITLE_BONUS = 5
ARTIST_BONUS = 5
RELEASE_BONUS = 4
YEAR_BONUS = 1
EARLIEST_PLAUSIBLE_YEAR = 1950

# (max difference in ms, bonus), checked in order
DURATION_TIERS = ((1500, 6), (3000, 3), (7000, 1))


def ci_contains(haystack: str, needle: str) -> bool:
    """Case-insensitive substring test."""
    return needle.lower() in haystack.lower()


def any_contains(values: Iterable[str], needle: str) -> bool:
    return any(ci_contains(v, needle) for v in values)


def duration_bonus(candidate_ms: int, query_ms: int) -> int:
    """Bonus for a close track length; 0 if either length is unknown."""
    if candidate_ms <= 0 or query_ms <= 0:
        return 0
    diff = abs(candidate_ms - query_ms)
    for max_diff, bonus in DURATION_TIERS:
        if diff <= max_diff:
            return bonus
    return 0


def parse_year(value: str) -> Optional[int]:
    """Year from an ISO-prefix date like '1997' or '1997-05-21'."""
    prefix = (value or "")[:4]
    if len(prefix) == 4 and prefix.isdigit():
        return int(prefix)
    return None


def score_recording(candidate: RecordingCandidate, query: Query) -> int:
    score = candidate.base_score
    if ci_contains(candidate.title, query.title):
        score += TITLE_BONUS
    if any_contains(candidate.artist_credits, query.artist):
        score += ARTIST_BONUS
    if query.album and any_contains(candidate.release_titles, query.album):
        score += RELEASE_BONUS
    score += duration_bonus(candidate.length_ms, query.duration_ms)
    return score


def score_release_group(candidate: ReleaseGroupCandidate, artist: str,
                        album: str, current_year: Optional[int] = None) -> int:
    if current_year is None:
        current_year = date.today().year

    score = candidate.base_score
    if ci_contains(candidate.title, album):
        score += TITLE_BONUS
    if any_contains(candidate.artist_credits, artist):
        score += ARTIST_BONUS
    year = parse_year(candidate.first_release_date)
    if year is not None and EARLIEST_PLAUSIBLE_YEAR <= year <= current_year + 1:
        score += YEAR_BONUS
    return score


def _best(ids: List[str], scores: List[int]) -> str:
    # sorted() is stable, so equal scores keep search order
    ranked = sorted(zip(ids, scores), key=lambda item: -item[1])
    return ranked[0][0] if ranked else ""


def resolve_best_recording(candidates: Sequence[RecordingCandidate],
                           query: Query) -> str:
    """
    Pick the recording that best matches the query.

    Args:
        candidates: Search results in catalog order
        query: Local metadata

    Returns:
        Identifier of the highest scoring candidate, or "" if there are none.
    """
    return _best(
        [c.id for c in candidates],
        [score_recording(c, query) for c in candidates],
    )


def resolve_best_release_group(candidates: Sequence[ReleaseGroupCandidate],
                               artist: str, album: str,
                               current_year: Optional[int] = None) -> str:
    """
    Pick the release group that best matches artist and album.

    Returns:
        Identifier of the highest scoring candidate, or "" if there are none.
    """
    return _best(
        [c.id for c in candidates],
        [score_release_group(c, artist, album, current_year) for c in candidates],
    )
