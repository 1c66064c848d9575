from __future__ import annotations

import re
from typing import Iterable, Optional, Tuple


# Catalogs append " (2)", " (3)"... when distinct entities share a name.
_DISAMBIGUATION_PATTERN = re.compile(r"\s\(\d+\)")
_TITLE_SEPARATOR = " - "


def strip_disambiguation(title: str) -> str:
    return _DISAMBIGUATION_PATTERN.sub("", title or "")


def split_title(title: str, artists: Optional[Iterable[str]] = None) -> Tuple[str, str]:
    """Split an "Artist - Album" title into its two halves.

    Only the first separator splits, so album names containing " - " survive.
    Without a separator the first known artist is used and the whole title is the album.
    """
    artist, sep, album = (title or "").partition(_TITLE_SEPARATOR)
    if sep:
        return artist.strip(), album.strip()
    fallback = next((a for a in (artists or []) if a), "")
    return strip_disambiguation(fallback).strip(), (title or "").strip()
