from __future__ import annotations

from typing import Iterator, List, Optional, Protocol, Tuple

from .entities import Release, StreamingAlbum


class CatalogProvider(Protocol):
    """Port for the metadata catalog used to discover albums by style and year."""

    def search_page(self, style: str, year: str, url: Optional[str] = None) -> Tuple[List[Release], Optional[str]]:
        """Return one page of releases and the URL of the next page, or None at the end."""

    def iter_releases(self, style: str, year: str) -> Iterator[Release]:
        """Lazily iterate every release across all result pages."""

    def master_year(self, master_url: str) -> int:
        """Return the authoritative year of a master release."""


class StreamingProvider(Protocol):
    """Port for the streaming service holding the destination playlist."""

    def search_albums(self, query: str) -> List[StreamingAlbum]:
        """Search albums with a free-text query."""

    def artist_albums(self, artist: str) -> List[StreamingAlbum]:
        """Search albums credited to the given artist."""

    def album_track_uris(self, album: StreamingAlbum) -> List[str]:
        """Return the ordered track URIs of an album."""

    def playlist_track_uris(self, playlist_id: str) -> List[str]:
        """Return every track URI currently in the playlist."""

    def add_tracks(self, playlist_id: str, track_uris: List[str]) -> None:
        """Append tracks to the playlist."""
