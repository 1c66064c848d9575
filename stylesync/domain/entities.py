from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional


@dataclass(frozen=True)
class Release:
    """Catalog entry for one pressing/edition of an album, as returned by a search."""

    title: str
    artists: List[str] = field(default_factory=list)
    formats: List[str] = field(default_factory=list)
    styles: List[str] = field(default_factory=list)
    have: int = 0
    master_url: Optional[str] = None
    year: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Release":
        community = data.get('community') or {}
        return cls(
            title=data.get('title') or '',
            artists=list(data.get('artist') or []),
            formats=list(data.get('format') or []),
            styles=list(data.get('style') or []),
            have=int(community.get('have') or 0),
            master_url=data.get('master_url') or None,
            year=str(data.get('year') or ''),
        )


@dataclass(frozen=True)
class MasterRelease:
    """Catalog grouping of every pressing of an album under one canonical year."""

    year: int


@dataclass(frozen=True)
class CandidateAlbum:
    """Normalized artist/album pair awaiting resolution on the streaming service."""

    artist: str
    album: str

    @property
    def title(self) -> str:
        return f"{self.artist} - {self.album}"


@dataclass(frozen=True)
class StreamingAlbum:
    """Album search result returned by the streaming service."""

    id: str
    name: str
    artists: List[str] = field(default_factory=list)
    release_date: str = ""
    album_type: Optional[str] = None
    href: Optional[str] = None

    @property
    def primary_artist(self) -> str:
        return self.artists[0] if self.artists else ""


@dataclass(frozen=True)
class StreamingAlbumMatch:
    """A candidate resolved to a streaming album and its ordered track URIs."""

    album_id: str
    name: str
    artist: str
    track_uris: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class StyleFilter:
    """Target style and year plus the style substrings that disqualify a release."""

    style: str
    year: str
    excluded_styles: FrozenSet[str] = frozenset()
    min_owners: int = 10


@dataclass(frozen=True)
class AppendResult:
    """Outcome of appending one album to the playlist."""

    added: int
    skipped: int


@dataclass
class SyncResult:
    """Summary of a whole run."""

    playlist_id: str
    initial_tracks: int = 0
    candidates: int = 0
    albums_added: int = 0
    albums_skipped: int = 0
    albums_dropped: int = 0
    tracks_added: int = 0
    dropped_titles: List[str] = field(default_factory=list)
    duration_ms: int = 0
