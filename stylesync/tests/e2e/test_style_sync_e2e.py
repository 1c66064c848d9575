from typing import Dict, Iterator, List, Optional, Tuple
from unittest.mock import Mock

import pytest

from stylesync.application.pipeline import BandSyncPipeline, RetryPolicy, StyleSyncPipeline
from stylesync.domain.entities import Release, StreamingAlbum, StyleFilter
from stylesync.domain.errors import UnexpectedStatus


class SimpleCatalog:
    """In-memory catalog for E2E testing."""

    def __init__(self, pages: List[List[Release]], masters: Optional[Dict[str, int]] = None):
        self.pages = pages
        self.masters = masters or {}
        self.master_lookups = []

    def search_page(self, style: str, year: str, url: Optional[str] = None) -> Tuple[List[Release], Optional[str]]:
        index = int(url) if url else 0
        next_url = str(index + 1) if index + 1 < len(self.pages) else None
        return self.pages[index], next_url

    def iter_releases(self, style: str, year: str) -> Iterator[Release]:
        url = None
        while True:
            releases, url = self.search_page(style, year, url)
            yield from releases
            if not url:
                break

    def master_year(self, master_url: str) -> int:
        self.master_lookups.append(master_url)
        return self.masters[master_url]


class SimpleSpotify:
    """In-memory streaming service for E2E testing."""

    def __init__(self, playlist: List[str], albums: List[StreamingAlbum], tracks: Dict[str, List[str]]):
        self.playlist = list(playlist)
        self.albums = albums
        self.tracks = tracks
        self.add_calls = []
        self.failures: Dict[str, int] = {}

    def search_albums(self, query: str) -> List[StreamingAlbum]:
        remaining = self.failures.get(query, 0)
        if remaining:
            self.failures[query] = remaining - 1
            raise UnexpectedStatus(503, "Service unavailable")
        return [a for a in self.albums if f"{a.primary_artist} - {a.name}".lower() == query.lower()]

    def artist_albums(self, artist: str) -> List[StreamingAlbum]:
        return [a for a in self.albums if a.primary_artist == artist]

    def album_track_uris(self, album: StreamingAlbum) -> List[str]:
        return list(self.tracks[album.id])

    def playlist_track_uris(self, playlist_id: str) -> List[str]:
        return list(self.playlist)

    def add_tracks(self, playlist_id: str, track_uris: List[str]) -> None:
        self.add_calls.append(list(track_uris))
        self.playlist.extend(track_uris)


class TestStyleSyncE2E:
    """End-to-end tests for style mode over in-memory services."""

    def setup_method(self):
        """Set up test fixtures."""
        self.sleep = Mock()
        self.retry_policy = RetryPolicy(attempts=3, delay=30.0, sleep=self.sleep)

    def test_popular_album_added_without_duplicates(self):
        """Test that only the popular release is added and existing tracks are kept out."""
        catalog = SimpleCatalog([[
            Release(title="Pallbearer - Sorrow And Extinction", styles=["Doom Metal"], have=15,
                    formats=["Vinyl", "LP", "Album"], master_url="m1"),
            Release(title="Obscure (3) - Demo Tape", styles=["Doom Metal"], have=5, formats=["Album"]),
        ]], masters={"m1": 2012})
        spotify = SimpleSpotify(
            playlist=["spotify:track:abc"],
            albums=[StreamingAlbum(id="a1", name="Sorrow and Extinction", artists=["Pallbearer"],
                                   release_date="2012-02-21")],
            tracks={"a1": ["spotify:track:abc", "spotify:track:def"]},
        )

        result = StyleSyncPipeline(catalog, spotify, retry_policy=self.retry_policy).run(
            StyleFilter(style="Doom Metal", year="2012"), "playlist_1"
        )

        assert spotify.add_calls == [["spotify:track:def"]]
        assert spotify.playlist == ["spotify:track:abc", "spotify:track:def"]
        assert result.candidates == 1
        assert result.tracks_added == 1
        assert catalog.master_lookups == ["m1"]

    def test_full_run_across_pages(self):
        """Test a run with pagination, reissues, exclusions, overlap and a transient failure."""
        catalog = SimpleCatalog([
            [
                Release(title="Windhand - Soma", styles=["Doom Metal"], have=300),
                Release(title="Windhand - Soma", styles=["Doom Metal"], have=120, formats=["Album", "Reissue"]),
                Release(title="Bell Witch - Four Phantoms", styles=["Doom Metal", "Drone"], have=500),
            ],
            [
                Release(title="YOB (2) - Atma", styles=["Sludge Metal", "Doom Metal"], have=200),
                Release(title="Old Band - Old Album", styles=["Doom Metal"], have=90, master_url="m-old"),
                Release(title="Windhand (2) - Soma", styles=["Doom Metal"], have=40),
            ],
        ], masters={"m-old": 1994})
        spotify = SimpleSpotify(
            playlist=[],
            albums=[
                StreamingAlbum(id="w", name="Soma", artists=["Windhand"], release_date="2012-09-18"),
                StreamingAlbum(id="y", name="Atma", artists=["YOB"], release_date="2012-05-15"),
            ],
            tracks={"w": ["spotify:track:w1", "spotify:track:shared"], "y": ["spotify:track:shared", "spotify:track:y1"]},
        )
        spotify.failures["YOB - Atma"] = 2

        result = StyleSyncPipeline(catalog, spotify, retry_policy=self.retry_policy).run(
            StyleFilter(style="Doom Metal", year="2012", excluded_styles=frozenset({"Drone"})), "playlist_1"
        )

        assert spotify.add_calls == [
            ["spotify:track:w1", "spotify:track:shared"],
            ["spotify:track:y1"],
        ]
        assert len(spotify.playlist) == len(set(spotify.playlist))
        assert result.candidates == 2
        assert result.albums_added == 2
        assert result.albums_dropped == 0
        assert self.sleep.call_count == 2

    def test_persistent_failure_drops_album(self):
        """Test that an album failing every attempt is dropped and reported."""
        catalog = SimpleCatalog([[Release(title="YOB - Atma", styles=["Doom Metal"], have=200)]])
        spotify = SimpleSpotify(playlist=[], albums=[], tracks={})
        spotify.failures["YOB - Atma"] = 10

        result = StyleSyncPipeline(catalog, spotify, retry_policy=self.retry_policy).run(
            StyleFilter(style="Doom Metal", year="2012"), "playlist_1"
        )

        assert result.albums_dropped == 1
        assert result.dropped_titles == ["YOB - Atma"]
        assert spotify.add_calls == []


class TestBandSyncE2E:
    """End-to-end tests for band mode."""

    def test_latest_albums_added(self):
        """Test that each artist's latest album is added in file order."""
        spotify = SimpleSpotify(
            playlist=["spotify:track:old"],
            albums=[
                StreamingAlbum(id="n1", name="Times of Grace", artists=["Neurosis"], release_date="1999-05-04"),
                StreamingAlbum(id="n2", name="Fires Within Fires", artists=["Neurosis"], release_date="2016-09-23"),
                StreamingAlbum(id="s1", name="The Sciences", artists=["Sleep"], release_date="2018-04-20"),
            ],
            tracks={"n1": ["spotify:track:old"], "n2": ["spotify:track:n2a"], "s1": ["spotify:track:s1a"]},
        )
        sleep = Mock()

        result = BandSyncPipeline(spotify, pause=1.0, sleep=sleep).run(["Neurosis", "Sleep", "Nobody"], "pl")

        assert spotify.add_calls == [["spotify:track:n2a"], ["spotify:track:s1a"]]
        assert result.albums_added == 2
        assert result.albums_skipped == 1
        assert sleep.call_count == 2

    def test_error_aborts_run(self):
        """Test that band mode stops at the first failure."""
        spotify = SimpleSpotify(
            playlist=[],
            albums=[StreamingAlbum(id="n2", name="Fires Within Fires", artists=["Neurosis"], release_date="2016")],
            tracks={"n2": ["spotify:track:n2a"]},
        )
        spotify.failures["Neurosis - Fires Within Fires"] = 1

        with pytest.raises(UnexpectedStatus):
            BandSyncPipeline(spotify, pause=0.0, sleep=Mock()).run(["Neurosis"], "pl")
