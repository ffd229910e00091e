"""URL-safe slugs that stay unique across the idea store."""
from __future__ import annotations

import re
import unicodedata
from typing import Callable, Optional, Set

from ideacal.specs.models.domain import IdeaDocument

FALLBACK_BASE = "idea"

_WHITESPACE_RE = re.compile(r"\s+")
_DISALLOWED_RE = re.compile(r"[^a-z0-9-]+")
_HYPHENS_RE = re.compile(r"-{2,}")


def slugify(text: str) -> str:
    """Lowercase, strip accents, hyphenate whitespace, drop everything else."""
    decomposed = unicodedata.normalize("NFKD", str(text or ""))
    ascii_only = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    slug = ascii_only.lower().strip()
    slug = _WHITESPACE_RE.sub("-", slug)
    slug = _DISALLOWED_RE.sub("", slug)
    slug = _HYPHENS_RE.sub("-", slug)
    return slug.strip("-")


class SlugAllocator:
    """Picks the first free slug among ``base``, ``base-1``, ``base-2``, ...

    ``find_by_slug`` is the read-time probe. Slugs this allocator already handed
    out count as taken even before they are written, so one allocator should
    serve one batch. The store's write-time check stays the final authority.
    """

    def __init__(self, find_by_slug: Callable[[str], Optional[IdeaDocument]]) -> None:
        self._find_by_slug = find_by_slug
        self._handed_out: Set[str] = set()

    def _is_free(self, candidate: str) -> bool:
        return candidate not in self._handed_out and self._find_by_slug(candidate) is None

    def allocate(self, title: str) -> str:
        base = slugify(title) or FALLBACK_BASE
        candidate = base
        suffix = 0
        while not self._is_free(candidate):
            suffix += 1
            candidate = f"{base}-{suffix}"
        self._handed_out.add(candidate)
        return candidate
