import logging
from collections import Counter
from typing import Iterator

from stylesync.application.filtering import CandidateCollector, ReleaseFilter
from stylesync.crosscutting.logging import log_with_fields
from stylesync.domain.entities import CandidateAlbum, StyleFilter
from stylesync.domain.ports import CatalogProvider


logger = logging.getLogger(__name__)


def discover_candidates(catalog: CatalogProvider, style_filter: StyleFilter) -> Iterator[CandidateAlbum]:
    """Yield unique candidate albums for the style and year, in catalog order.

    Catalog errors propagate; the caller treats them as fatal to the run.
    """
    release_filter = ReleaseFilter(style_filter, catalog.master_year)
    collector = CandidateCollector()
    rejected: Counter = Counter()
    scanned = 0
    accepted = 0

    for release in catalog.iter_releases(style_filter.style, style_filter.year):
        scanned += 1
        decision = release_filter.evaluate(release)
        if not decision.accepted:
            rejected[decision.reason] += 1
            continue
        candidate = collector.collect(release)
        if candidate is None:
            rejected['duplicate'] += 1
            continue
        accepted += 1
        yield candidate

    log_with_fields(logger, 'INFO', f"Discovery finished: {scanned} releases scanned, {accepted} candidates", {
        'scanned': scanned,
        'candidates': accepted,
        'rejected': dict(rejected),
    })
