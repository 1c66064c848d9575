import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, TypeVar

from stylesync.application.discovery import discover_candidates
from stylesync.application.matching import AlbumMatcher
from stylesync.application.reconciler import AlbumResolver, PlaylistReconciler
from stylesync.crosscutting.logging import CorrelationContext, log_with_fields
from stylesync.domain.entities import AppendResult, CandidateAlbum, StyleFilter, SyncResult
from stylesync.domain.errors import AlbumDropped
from stylesync.domain.ports import CatalogProvider, StreamingProvider


logger = logging.getLogger(__name__)

T = TypeVar('T')

_END_OF_DISCOVERY = object()


@dataclass
class RetryPolicy:
    """Fixed-delay retry policy for the per-album resolve+append step."""

    attempts: int = 3
    delay: float = 30.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)


def with_retries(operation: Callable[[], T], title: str, policy: RetryPolicy) -> T:
    """Run operation up to policy.attempts times, sleeping policy.delay between attempts.

    Raises:
        AlbumDropped: If every attempt failed
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return operation()
        except Exception as e:
            if attempt >= policy.attempts:
                logger.error(f"Max retries exceeded for {title}: {e}")
                raise AlbumDropped(title, attempt, e) from e
            logger.warning(f"retrying {title} in {policy.delay:g}s (attempt {attempt} failed): {e}")
            policy.sleep(policy.delay)


class AlbumProcessor:
    """Resolves one candidate on the streaming service and appends its new tracks."""

    def __init__(self, resolver: AlbumResolver, reconciler: PlaylistReconciler):
        self.resolver = resolver
        self.reconciler = reconciler

    def process(self, candidate: CandidateAlbum, year: Optional[str] = None) -> Optional[AppendResult]:
        """Resolve and append a candidate.

        Returns:
            AppendResult, or None when the candidate has no streaming equivalent
        """
        with CorrelationContext(stage='resolving', album=candidate.title):
            match = self.resolver.resolve(candidate, year)
        if match is None:
            return None
        logger.info(f"adding {candidate.artist} - {candidate.album}")
        with CorrelationContext(stage='appending', album=candidate.title):
            return self.reconciler.append(match)


def _record(result: SyncResult, outcome: Optional[AppendResult]) -> None:
    if outcome is not None and outcome.added:
        result.albums_added += 1
        result.tracks_added += outcome.added
    else:
        result.albums_skipped += 1


def _elapsed_ms(start_time: datetime) -> int:
    return int((datetime.now() - start_time).total_seconds() * 1000)


class StyleSyncPipeline:
    """Discovers albums by style and year and adds their tracks to a playlist.

    Discovery runs on the calling thread and hands candidates to a single
    worker thread through an unbounded queue, so a slow album never holds up
    catalog pagination. The worker handles albums strictly in discovery order.
    """

    def __init__(self,
                 catalog: CatalogProvider,
                 streaming: StreamingProvider,
                 retry_policy: Optional[RetryPolicy] = None,
                 matcher: Optional[AlbumMatcher] = None):
        """Initialize the pipeline.

        Args:
            catalog: Catalog used for discovery
            streaming: Streaming service holding the playlist
            retry_policy: Retry policy for each album's resolve+append step
            matcher: Album matcher used during resolution
        """
        self.catalog = catalog
        self.streaming = streaming
        self.retry_policy = retry_policy or RetryPolicy()
        self.matcher = matcher or AlbumMatcher()

    def run(self, style_filter: StyleFilter, playlist_id: str) -> SyncResult:
        """Run discovery and reconciliation to completion.

        Raises:
            StyleSyncError: If discovery or the initial playlist fetch fails
        """
        start_time = datetime.now()
        result = SyncResult(playlist_id=playlist_id)

        with CorrelationContext(mode='style', playlist_id=playlist_id):
            reconciler = PlaylistReconciler(self.streaming, playlist_id)
            result.initial_tracks = reconciler.load()
            processor = AlbumProcessor(AlbumResolver(self.streaming, self.matcher), reconciler)

            handoff: "queue.Queue" = queue.Queue()
            abort = threading.Event()
            worker = threading.Thread(
                target=self._consume,
                args=(handoff, processor, style_filter.year, result, abort, playlist_id),
                name='stylesync-albums',
                daemon=True,
            )
            worker.start()

            try:
                with CorrelationContext(stage='discovering'):
                    for candidate in discover_candidates(self.catalog, style_filter):
                        result.candidates += 1
                        handoff.put(candidate)
            except BaseException:
                abort.set()
                raise
            finally:
                handoff.put(_END_OF_DISCOVERY)
                worker.join()

            result.duration_ms = _elapsed_ms(start_time)
            with CorrelationContext(stage='done'):
                log_with_fields(logger, 'INFO', 'Style sync completed', {
                    'candidates': result.candidates,
                    'albums_added': result.albums_added,
                    'albums_skipped': result.albums_skipped,
                    'albums_dropped': result.albums_dropped,
                    'tracks_added': result.tracks_added,
                    'duration_ms': result.duration_ms,
                })
        return result

    def _consume(self,
                 handoff: "queue.Queue",
                 processor: AlbumProcessor,
                 year: str,
                 result: SyncResult,
                 abort: threading.Event,
                 playlist_id: str) -> None:
        with CorrelationContext(mode='style', playlist_id=playlist_id):
            while True:
                candidate = handoff.get()
                if candidate is _END_OF_DISCOVERY or abort.is_set():
                    return
                try:
                    outcome = with_retries(
                        lambda: processor.process(candidate, year),
                        candidate.title,
                        self.retry_policy,
                    )
                except AlbumDropped as e:
                    logger.error(str(e))
                    result.albums_dropped += 1
                    result.dropped_titles.append(candidate.title)
                    continue
                _record(result, outcome)


class BandSyncPipeline:
    """Adds the latest album of each listed artist to a playlist.

    Unlike the style pipeline there are no retries: any failure aborts the run.
    """

    def __init__(self,
                 streaming: StreamingProvider,
                 matcher: Optional[AlbumMatcher] = None,
                 pause: float = 1.0,
                 sleep: Callable[[float], None] = time.sleep):
        self.streaming = streaming
        self.matcher = matcher or AlbumMatcher()
        self.pause = pause
        self.sleep = sleep

    def latest_album(self, artist: str) -> Optional[CandidateAlbum]:
        albums = self.streaming.artist_albums(artist)
        latest = self.matcher.select_latest_album(albums, artist)
        if latest is None:
            logger.info(f"no albums found for {artist}")
            return None
        logger.info(f"latest album from {artist} is {latest.name}")
        return CandidateAlbum(artist=artist, album=latest.name)

    def run(self, artists: List[str], playlist_id: str) -> SyncResult:
        start_time = datetime.now()
        result = SyncResult(playlist_id=playlist_id)

        with CorrelationContext(mode='band', playlist_id=playlist_id):
            reconciler = PlaylistReconciler(self.streaming, playlist_id)
            result.initial_tracks = reconciler.load()
            processor = AlbumProcessor(AlbumResolver(self.streaming, self.matcher), reconciler)

            for index, artist in enumerate(artists):
                if index:
                    self.sleep(self.pause)
                candidate = self.latest_album(artist)
                if candidate is None:
                    result.albums_skipped += 1
                    continue
                result.candidates += 1
                _record(result, processor.process(candidate))

            result.duration_ms = _elapsed_ms(start_time)
            with CorrelationContext(stage='done'):
                log_with_fields(logger, 'INFO', 'Band sync completed', {
                    'artists': len(artists),
                    'albums_added': result.albums_added,
                    'albums_skipped': result.albums_skipped,
                    'tracks_added': result.tracks_added,
                    'duration_ms': result.duration_ms,
                })
        return result


def read_artists(path: str) -> List[str]:
    """Read one artist name per line, ignoring blank lines."""
    lines = Path(path).read_text(encoding='utf-8').splitlines()
    return [line.strip() for line in lines if line.strip()]
