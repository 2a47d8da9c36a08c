"""MusicBrainz WS/2 client for recording and release-group genres."""

import logging
from typing import List, Optional
from urllib.parse import quote

from genrebender.http_fetcher import CancelToken, HttpFetcher
from genrebender.models import (
    GenreTagSet, Query, RecordingCandidate, ReleaseGroupCandidate
)
from genrebender.query_builder import recording_query, release_group_query
from genrebender.resolver import resolve_best_recording, resolve_best_release_group
from genrebender.tags import normalize_genres, normalize_tags

logger = logging.getLogger(__name__)


class MusicBrainzClient:
    """Client for the MusicBrainz web service."""

    BASE_URL = "https://musicbrainz.org/ws/2"
    SEARCH_LIMIT = 5

    def __init__(self, fetcher: HttpFetcher):
        """
        Initialize MusicBrainz client.

        Args:
            fetcher: Shared HTTP fetcher (carries the User-Agent and retries)
        """
        self.fetcher = fetcher

    def _search(self, entity: str, query: str, parse,
                cancel: Optional[CancelToken], deadline: Optional[float]):
        logger.debug(f"Searching {entity}: {query}")
        return self.fetcher.fetch_json(
            f"{self.BASE_URL}/{entity}",
            params={"query": query, "limit": self.SEARCH_LIMIT, "fmt": "json"},
            parse=parse,
            cancel=cancel,
            deadline=deadline,
        )

    def _lookup_genres(self, entity: str, mbid: str,
                       cancel: Optional[CancelToken],
                       deadline: Optional[float]) -> GenreTagSet:
        return self.fetcher.fetch_json(
            f"{self.BASE_URL}/{entity}/{quote(mbid, safe='')}",
            params={"inc": "genres tags", "fmt": "json"},
            parse=self._parse_genre_tag_set,
            cancel=cancel,
            deadline=deadline,
        )

    def search_recordings(self, query: Query,
                          cancel: Optional[CancelToken] = None,
                          deadline: Optional[float] = None) -> List[RecordingCandidate]:
        """Search recordings by artist, title, and (if known) album."""
        return self._search(
            "recording",
            recording_query(query.artist, query.title, query.album),
            self._parse_recordings, cancel, deadline,
        )

    def search_release_groups(self, artist: str, album: str,
                              cancel: Optional[CancelToken] = None,
                              deadline: Optional[float] = None) -> List[ReleaseGroupCandidate]:
        """Search release groups by artist and album."""
        return self._search(
            "release-group",
            release_group_query(artist, album),
            self._parse_release_groups, cancel, deadline,
        )

    def find_recording_id(self, query: Query,
                          cancel: Optional[CancelToken] = None,
                          deadline: Optional[float] = None) -> str:
        """
        Search and resolve the best matching recording.

        Returns:
            Recording MBID, or "" when the search found nothing.
        """
        candidates = self.search_recordings(query, cancel, deadline)
        return resolve_best_recording(candidates, query)

    def find_release_group_id(self, artist: str, album: str,
                              cancel: Optional[CancelToken] = None,
                              deadline: Optional[float] = None) -> str:
        """
        Search and resolve the best matching release group.

        Returns:
            Release group MBID, or "" when the search found nothing.
        """
        candidates = self.search_release_groups(artist, album, cancel, deadline)
        return resolve_best_release_group(candidates, artist, album)

    def recording_genres(self, mbid: str, cancel: Optional[CancelToken] = None,
                         deadline: Optional[float] = None) -> GenreTagSet:
        """Fetch normalized genres and tags of a recording."""
        return self._lookup_genres("recording", mbid, cancel, deadline)

    def release_group_genres(self, mbid: str, cancel: Optional[CancelToken] = None,
                             deadline: Optional[float] = None) -> GenreTagSet:
        """Fetch normalized genres and tags of a release group."""
        return self._lookup_genres("release-group", mbid, cancel, deadline)

    @staticmethod
    def _artist_names(data: dict) -> List[str]:
        return [
            credit.get("name") or ""
            for credit in data.get("artist-credit") or []
            if isinstance(credit, dict)
        ]

    def _parse_recordings(self, data: dict) -> List[RecordingCandidate]:
        """Parse a recording search response into candidates."""
        return [
            RecordingCandidate(
                id=rec["id"],
                base_score=int(rec.get("score") or 0),
                title=rec.get("title") or "",
                length_ms=int(rec.get("length") or 0),
                artist_credits=self._artist_names(rec),
                release_titles=[
                    rel.get("title") or "" for rel in rec.get("releases") or []
                ],
            )
            for rec in data.get("recordings") or []
        ]

    def _parse_release_groups(self, data: dict) -> List[ReleaseGroupCandidate]:
        """Parse a release-group search response into candidates."""
        return [
            ReleaseGroupCandidate(
                id=rg["id"],
                base_score=int(rg.get("score") or 0),
                title=rg.get("title") or "",
                artist_credits=self._artist_names(rg),
                first_release_date=rg.get("first-release-date") or "",
            )
            for rg in data.get("release-groups") or []
        ]

    @staticmethod
    def _parse_genre_tag_set(data: dict) -> GenreTagSet:
        return GenreTagSet(
            genres=normalize_genres(data.get("genres") or []),
            tags=normalize_tags(data.get("tags") or []),
        )
