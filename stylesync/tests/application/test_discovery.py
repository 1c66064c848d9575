from unittest.mock import Mock, patch

import pytest

from stylesync.application.discovery import discover_candidates
from stylesync.domain.entities import CandidateAlbum, Release, StyleFilter
from stylesync.domain.errors import UnexpectedStatus


class TestDiscoverCandidates:
    """Tests for discovery over the catalog."""

    def setup_method(self):
        """Set up test fixtures."""
        self.catalog = Mock()
        self.catalog.master_year.return_value = 2012
        self.style_filter = StyleFilter(style="Doom Metal", year="2012")

    def test_only_popular_release_becomes_candidate(self):
        """Test that of two matching releases only the one with enough owners is kept."""
        self.catalog.iter_releases.return_value = iter([
            Release(title="Pallbearer - Sorrow And Extinction", styles=["Doom Metal"], have=15,
                    formats=["Vinyl", "Album"]),
            Release(title="Unknown - Demo", styles=["Doom Metal"], have=5, formats=["Album"]),
        ])

        candidates = list(discover_candidates(self.catalog, self.style_filter))

        assert candidates == [CandidateAlbum(artist="Pallbearer", album="Sorrow And Extinction")]
        self.catalog.iter_releases.assert_called_once_with("Doom Metal", "2012")

    def test_duplicates_across_pages_forwarded_once(self):
        """Test that overlapping results produce one candidate per title."""
        self.catalog.iter_releases.return_value = iter([
            Release(title="Windhand - Soma", styles=["Doom Metal"], have=100),
            Release(title="Windhand (2) - Soma", styles=["Doom Metal"], have=100),
            Release(title="YOB - Atma", styles=["Doom Metal"], have=100),
        ])

        candidates = list(discover_candidates(self.catalog, self.style_filter))

        assert [c.title for c in candidates] == ["Windhand - Soma", "YOB - Atma"]

    @patch('stylesync.application.discovery.log_with_fields')
    def test_summary_counts_rejection_reasons(self, mock_log):
        """Test that the discovery summary reports why releases were rejected."""
        self.catalog.iter_releases.return_value = iter([
            Release(title="Windhand - Soma", styles=["Doom Metal"], have=100),
            Release(title="Windhand (2) - Soma", styles=["Doom Metal"], have=100),
            Release(title="Unknown - Demo", styles=["Doom Metal"], have=5),
            Release(title="Other - Thing", styles=["Sludge Metal"], have=100),
        ])

        list(discover_candidates(self.catalog, self.style_filter))

        fields = mock_log.call_args.args[3]
        assert fields['scanned'] == 4
        assert fields['candidates'] == 1
        assert fields['rejected'] == {'duplicate': 1, 'low_popularity': 1, 'style': 1}

    def test_is_lazy(self):
        """Test that releases are pulled only as candidates are consumed."""
        pulled = []

        def releases(style, year):
            for i in range(3):
                pulled.append(i)
                yield Release(title=f"Band - Album {i}", styles=["Doom Metal"], have=100)

        self.catalog.iter_releases.side_effect = releases

        stream = discover_candidates(self.catalog, self.style_filter)
        next(stream)

        assert pulled == [0]

    def test_catalog_error_propagates(self):
        """Test that a catalog failure aborts discovery."""
        def releases(style, year):
            yield Release(title="Band - One", styles=["Doom Metal"], have=100)
            raise UnexpectedStatus(500, "upstream down")

        self.catalog.iter_releases.side_effect = releases

        stream = discover_candidates(self.catalog, self.style_filter)
        assert next(stream).album == "One"
        with pytest.raises(UnexpectedStatus, match="upstream down"):
            next(stream)
