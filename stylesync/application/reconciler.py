import logging
from typing import Iterable, List, Optional, Set

from stylesync.application.matching import AlbumMatcher
from stylesync.domain.entities import AppendResult, CandidateAlbum, StreamingAlbumMatch
from stylesync.domain.ports import StreamingProvider


logger = logging.getLogger(__name__)

# Largest add-items request the streaming service accepts
APPEND_BATCH_SIZE = 100


class AlbumResolver:
    """Resolves a candidate album to a streaming album and its tracks."""

    def __init__(self, streaming: StreamingProvider, matcher: Optional[AlbumMatcher] = None):
        self.streaming = streaming
        self.matcher = matcher or AlbumMatcher()

    def resolve(self, candidate: CandidateAlbum, year: Optional[str] = None) -> Optional[StreamingAlbumMatch]:
        """Search the candidate and fetch the track list of the selected album.

        Args:
            candidate: Artist/album pair to look up
            year: When given, only albums released that year are considered

        Returns:
            The match, or None when the streaming catalog has no equivalent
        """
        results = self.streaming.search_albums(candidate.title)
        if not results:
            logger.info(f"no albums found for {candidate.title}")
            return None

        selected = self.matcher.select_album(results, candidate.artist, candidate.album, year)
        if selected is None:
            logger.info(f"No match for {candidate.title}")
            return None

        track_uris = self.streaming.album_track_uris(selected)
        return StreamingAlbumMatch(
            album_id=selected.id,
            name=selected.name,
            artist=selected.primary_artist,
            track_uris=track_uris,
        )


class PlaylistReconciler:
    """Appends only the tracks the destination playlist does not already hold.

    The track set starts as a snapshot of the playlist and grows with every
    successful batch, so a track shared by two albums is submitted once and a
    retried album only resends the batches that did not land.
    """

    def __init__(self, streaming: StreamingProvider, playlist_id: str):
        self.streaming = streaming
        self.playlist_id = playlist_id
        self.track_set: Set[str] = set()

    def load(self) -> int:
        uris = self.streaming.playlist_track_uris(self.playlist_id)
        self.track_set = set(uris)
        logger.info(f"got {len(uris)} tracks in playlist")
        return len(uris)

    def new_uris(self, uris: Iterable[str]) -> List[str]:
        fresh: List[str] = []
        pending: Set[str] = set()
        for uri in uris:
            if not uri or uri in self.track_set or uri in pending:
                continue
            pending.add(uri)
            fresh.append(uri)
        return fresh

    def append(self, match: StreamingAlbumMatch) -> AppendResult:
        label = f"{match.artist} - {match.name}"
        fresh = self.new_uris(match.track_uris)
        skipped = len(match.track_uris) - len(fresh)
        if not fresh:
            logger.info(f"no new tracks to add for {label}")
            return AppendResult(added=0, skipped=skipped)

        for i in range(0, len(fresh), APPEND_BATCH_SIZE):
            batch = fresh[i:i + APPEND_BATCH_SIZE]
            self.streaming.add_tracks(self.playlist_id, batch)
            # Record each batch as soon as it lands so a retry never resends it
            self.track_set.update(batch)
        logger.info(f"added {len(fresh)} tracks to playlist for {label}")
        return AppendResult(added=len(fresh), skipped=skipped)
