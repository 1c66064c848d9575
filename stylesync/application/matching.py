import logging
from typing import List, Optional

from rapidfuzz.distance import Levenshtein

from stylesync.domain.entities import StreamingAlbum


logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.8


def similarity(a: str, b: str) -> float:
    """Normalized Levenshtein similarity in [0, 1]: 1 - distance / max(len(a), len(b))."""
    return Levenshtein.normalized_similarity(a or "", b or "")


def are_similar(a: str, b: str, threshold: float = DEFAULT_THRESHOLD) -> bool:
    return similarity(a, b) > threshold


class AlbumMatcher:
    """Picks the streaming album that corresponds to a candidate artist/album pair.

    Matching is fuzzy on both names so that punctuation, casing of articles or
    small spelling differences between catalogs do not prevent a match.
    """

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        """Initialize the matcher.

        Args:
            threshold: Similarity above which two names are considered equal
        """
        self.threshold = threshold

    def is_match(self, album: StreamingAlbum, artist: str, name: str) -> bool:
        return (are_similar(album.primary_artist, artist, self.threshold)
                and are_similar(album.name, name, self.threshold))

    def select_album(self,
                     albums: List[StreamingAlbum],
                     artist: str,
                     name: str,
                     year: Optional[str] = None) -> Optional[StreamingAlbum]:
        """Return the first search result matching the candidate, or None.

        Args:
            albums: Search results in service order
            artist: Intended artist name
            name: Intended album name
            year: When given, the release date must start with it

        Returns:
            The selected album or None when nothing matches
        """
        for album in albums:
            if year and not (album.release_date or "").startswith(year):
                logger.debug(f"skipping {album.name} because release date is {album.release_date}")
                continue
            if self.is_match(album, artist, name):
                return album
        return None

    def select_latest_album(self, albums: List[StreamingAlbum], artist: str) -> Optional[StreamingAlbum]:
        """Return the most recent album credited to the artist.

        Falls back to the most recent album overall when no result's artist is
        similar to the requested one.
        """
        if not albums:
            return None
        by_date = sorted(albums, key=lambda a: a.release_date or "", reverse=True)
        for album in by_date:
            if are_similar(album.primary_artist, artist, self.threshold):
                return album
        return by_date[0]
