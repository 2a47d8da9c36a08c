"""Data models for GenreBender."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional


class CacheSource(Enum):
    """Which catalog entity a cached genre list came from."""
    RECORDING = "recording"
    RELEASE_GROUP = "release-group"


class ResolutionStatus(Enum):
    """Outcome of resolving one audio item."""
    MATCHED = "matched"
    NO_MATCH = "no_match"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Query:
    """Local metadata used to search the catalog."""
    artist: str = ""
    title: str = ""
    album: str = ""
    duration_ms: int = 0  # 0 = unknown

    @property
    def is_searchable(self) -> bool:
        """Check if there is anything to search with."""
        return bool(self.artist.strip() or self.title.strip())


@dataclass
class RecordingCandidate:
    """One recording returned by a catalog search."""
    id: str
    base_score: int
    title: str
    length_ms: int = 0
    artist_credits: List[str] = field(default_factory=list)
    release_titles: List[str] = field(default_factory=list)


@dataclass
class ReleaseGroupCandidate:
    """One release group returned by a catalog search."""
    id: str
    base_score: int
    title: str
    artist_credits: List[str] = field(default_factory=list)
    first_release_date: str = ""


@dataclass
class GenreTagSet:
    """Normalized genres and voted tags for a catalog entity."""
    genres: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)


@dataclass
class CacheEntry:
    """A cached lookup result, stored as one JSON file per key."""
    source: CacheSource
    mbid: str
    genres: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    fetched_at: Optional[datetime] = None
    schema_version: int = 0
    raw: Optional[Any] = None

    def to_dict(self) -> dict:
        data = {
            "source": self.source.value,
            "mbid": self.mbid,
            "genres": list(self.genres),
            "tags": list(self.tags),
            "fetched_at": self.fetched_at.isoformat() if self.fetched_at else None,
            "schema_version": self.schema_version,
        }
        if self.raw is not None:
            data["raw"] = self.raw
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CacheEntry":
        """Build an entry from its JSON form.

        Raises:
            KeyError, TypeError, ValueError: If the payload is malformed.
        """
        fetched_at = data["fetched_at"]
        return cls(
            source=CacheSource(data["source"]),
            mbid=data["mbid"],
            genres=list(data.get("genres") or []),
            tags=list(data.get("tags") or []),
            fetched_at=datetime.fromisoformat(fetched_at) if fetched_at else None,
            schema_version=int(data["schema_version"]),
            raw=data.get("raw"),
        )


@dataclass
class ResolutionResult:
    """What the orchestrator reports for one audio item."""
    status: ResolutionStatus
    mbid: str = ""
    genres: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    source: Optional[CacheSource] = None
    from_cache: bool = False
    stale: bool = False

    @property
    def matched(self) -> bool:
        return self.status == ResolutionStatus.MATCHED


@dataclass
class ProcessingStats:
    """Statistics for a processing run."""
    total_files: int = 0
    files_matched: int = 0
    files_unmatched: int = 0
    files_skipped: int = 0
    cache_hits: int = 0
    tags_written: int = 0
    errors: List[str] = field(default_factory=list)
