import logging
from dataclasses import dataclass
from typing import Callable, Optional, Set

from stylesync.domain.entities import CandidateAlbum, Release, StyleFilter
from stylesync.domain.normalization import split_title, strip_disambiguation


logger = logging.getLogger(__name__)

REJECTED_FORMATS = {"Reissue", "Remastered"}


@dataclass(frozen=True)
class FilterDecision:
    """Outcome of running a release through the filter chain."""

    accepted: bool
    reason: str

    @classmethod
    def accept(cls) -> "FilterDecision":
        return cls(True, "accepted")

    @classmethod
    def reject(cls, reason: str) -> "FilterDecision":
        return cls(False, reason)


def matches_style(release: Release, style: str) -> bool:
    """Only the first one or two style tags are inspected, never the full list."""
    styles = release.styles
    if len(styles) == 1:
        return styles[0].endswith(style)
    if len(styles) > 1:
        return styles[0].endswith(style) or styles[1].endswith(style)
    return True


def excluded_style(release: Release, excluded) -> Optional[str]:
    """Return the first excluded substring found in any style tag."""
    for tag in release.styles:
        for exc in excluded:
            if exc and exc in tag:
                return exc
    return None


def is_reissue_or_remaster(release: Release) -> bool:
    return any(f in REJECTED_FORMATS for f in release.formats)


class ReleaseFilter:
    """Decides whether a catalog release is a genuine first pressing of the target style and year.

    Predicates run in a fixed order and stop at the first rejection; the
    master-year lookup is the only one hitting the network, so it runs last.
    """

    def __init__(self, style_filter: StyleFilter, master_year: Callable[[str], int]):
        """Initialize the filter.

        Args:
            style_filter: Target style/year and exclusions
            master_year: Resolves a master release URL to its canonical year
        """
        self.style_filter = style_filter
        self._master_year = master_year

    def evaluate(self, release: Release) -> FilterDecision:
        sf = self.style_filter

        if not matches_style(release, sf.style):
            logger.debug(f"skipping {release.title} because it doesn't match style {sf.style}")
            return FilterDecision.reject("style")

        exc = excluded_style(release, sf.excluded_styles)
        if exc is not None:
            logger.debug(f"skipping {release.title} because it contains excluded style {exc}")
            return FilterDecision.reject("excluded_style")

        if release.have < sf.min_owners:
            logger.debug(f"skipping {release.title} because it has less than {sf.min_owners} copies")
            return FilterDecision.reject("low_popularity")

        if is_reissue_or_remaster(release):
            logger.debug(f"skipping {release.title} because it is a reissue or remaster")
            return FilterDecision.reject("reissue")

        if release.master_url:
            master_year = str(self._master_year(release.master_url))
            if master_year != sf.year:
                logger.debug(f"skipping {release.title} because master release year "
                             f"{master_year} does not match search year {sf.year}")
                return FilterDecision.reject("master_year_mismatch")

        return FilterDecision.accept()


class CandidateCollector:
    """Turns accepted releases into candidates, forwarding each normalized title once per run."""

    def __init__(self):
        self.seen_titles: Set[str] = set()

    def collect(self, release: Release) -> Optional[CandidateAlbum]:
        title = strip_disambiguation(release.title)
        if title in self.seen_titles:
            logger.debug(f"skipping {title} because it was already queued")
            return None
        self.seen_titles.add(title)
        artist, album = split_title(title, release.artists)
        return CandidateAlbum(artist=artist, album=album)
