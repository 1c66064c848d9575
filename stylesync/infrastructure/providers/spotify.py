import logging
from typing import Any, Dict, List, Optional

import requests
import spotipy
from spotipy.exceptions import SpotifyException

from stylesync.domain.entities import StreamingAlbum
from stylesync.domain.errors import DecodeError, TransportError, UnexpectedStatus
from stylesync.domain.ports import StreamingProvider

logger = logging.getLogger(__name__)

# Spotify accepts at most 100 URIs per add-items request.
MAX_TRACKS_PER_REQUEST = 100


class SpotifyProvider(StreamingProvider):
    """Spotify streaming provider implementation."""

    def __init__(self, access_token: str, client: Optional[spotipy.Spotify] = None,
                 requests_timeout: int = 15):
        """Initialize Spotify provider.

        Args:
            access_token: Bearer token sent with every call
            client: Optional preconfigured spotipy client
            requests_timeout: Timeout for each HTTP request in seconds
        """
        self.access_token = access_token
        # Retries happen once per album in the pipeline, never inside the HTTP session
        self._client = client or spotipy.Spotify(
            auth=access_token,
            requests_timeout=requests_timeout,
            retries=0,
            status_retries=0,
        )

    def _call(self, operation: str, func, *args, **kwargs):
        """Invoke a spotipy method, translating its failures into domain errors."""
        try:
            return func(*args, **kwargs)
        except SpotifyException as e:
            logger.debug(f"Spotify {operation} failed with status {e.http_status}: {e.msg}")
            raise UnexpectedStatus(e.http_status, e.msg, getattr(e, 'url', None)) from e
        except ValueError as e:
            raise DecodeError(f"Malformed Spotify response during {operation}: {e}") from e
        except requests.RequestException as e:
            raise TransportError(f"Spotify {operation} failed: {e}") from e

    @staticmethod
    def _album_from_item(item: Dict[str, Any]) -> StreamingAlbum:
        href = item.get('href')
        album_id = item.get('id') or (href.rstrip('/').rsplit('/', 1)[-1] if href else '')
        return StreamingAlbum(
            id=album_id,
            name=item.get('name') or '',
            artists=[a.get('name') or '' for a in item.get('artists') or []],
            release_date=item.get('release_date') or '',
            album_type=item.get('album_type'),
            href=href,
        )

    def _album_items(self, results: Optional[Dict[str, Any]]) -> List[StreamingAlbum]:
        items = ((results or {}).get('albums') or {}).get('items') or []
        return [self._album_from_item(item) for item in items if item]

    def search_albums(self, query: str) -> List[StreamingAlbum]:
        logger.debug(f"Searching albums: {query}")
        results = self._call('album search', self._client.search, q=query, type='album')
        return self._album_items(results)

    def artist_albums(self, artist: str) -> List[StreamingAlbum]:
        return self.search_albums(f"artist:{artist}")

    def album_track_uris(self, album: StreamingAlbum) -> List[str]:
        """Return the ordered track URIs of an album, following track pagination."""
        data = self._call('album lookup', self._client.album, album.id)
        page = (data or {}).get('tracks') or {}
        uris: List[str] = []
        while page:
            uris.extend(item['uri'] for item in page.get('items') or [] if item and item.get('uri'))
            if not page.get('next'):
                break
            page = self._call('album tracks', self._client.next, page)
        return uris

    def playlist_track_uris(self, playlist_id: str) -> List[str]:
        """Return every track URI in the playlist, following pagination until next is empty."""
        page = self._call(
            'playlist fetch',
            self._client.playlist_items,
            playlist_id,
            limit=100,
            fields='items(track(uri)),next',
        )
        uris: List[str] = []
        while page:
            for item in page.get('items') or []:
                # Local files and removed tracks come back without a track object
                track = (item or {}).get('track') or {}
                if track.get('uri'):
                    uris.append(track['uri'])
            if not page.get('next'):
                break
            page = self._call('playlist fetch', self._client.next, page)
        return uris

    def add_tracks(self, playlist_id: str, track_uris: List[str]) -> None:
        for i in range(0, len(track_uris), MAX_TRACKS_PER_REQUEST):
            batch = track_uris[i:i + MAX_TRACKS_PER_REQUEST]
            result = self._call('add tracks', self._client.playlist_add_items, playlist_id, batch)
            if not result or 'snapshot_id' not in result:
                raise UnexpectedStatus(None, f"Add tracks returned no snapshot: {result}")
