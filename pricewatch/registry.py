"""Registry mapping marketplace identifiers to extractors."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping
from urllib.parse import urlparse

from .extractors import ALL_EXTRACTORS, Extractor

logger = logging.getLogger(__name__)


class UnknownMarketplaceError(LookupError):
    """Raised when no extractor is registered for a product's marketplace."""


class ExtractorRegistry:
    """Lookup of extractor instances by slug or product URL.

    A stored ``marketplace`` field on the record takes precedence over the
    URL host.
    """

    def __init__(self, extractors: Iterable[Extractor] = ()):
        self._by_slug: Dict[str, Extractor] = {}
        for extractor in extractors:
            self.register(extractor)

    def register(self, extractor: Extractor) -> None:
        if not isinstance(extractor, Extractor):
            raise ValueError(f"Extractor must inherit from Extractor: {extractor!r}")
        if not extractor.slug:
            raise ValueError(f"Extractor has no slug: {extractor!r}")
        self._by_slug[extractor.slug] = extractor
        logger.debug("Registered extractor %s", extractor.slug)

    def get(self, slug: str) -> Extractor:
        try:
            return self._by_slug[slug]
        except KeyError:
            raise UnknownMarketplaceError(f"No extractor registered for marketplace {slug!r}") from None

    def for_url(self, url: str) -> Extractor:
        host = (urlparse(url or "").hostname or "").lower()
        for extractor in self._by_slug.values():
            if extractor.matches_host(host):
                return extractor
        raise UnknownMarketplaceError(f"No extractor matches host {host!r}")

    def resolve(self, record: Mapping) -> Extractor:
        """Pick the extractor for a store record."""
        slug = str(record.get("marketplace") or "").strip().lower()
        if slug:
            return self.get(slug)
        return self.for_url(str(record.get("product_url") or ""))

    @property
    def slugs(self) -> List[str]:
        return list(self._by_slug.keys())

    def __contains__(self, slug: str) -> bool:
        return slug in self._by_slug


def default_registry() -> ExtractorRegistry:
    """Registry with every built-in marketplace."""
    return ExtractorRegistry(cls() for cls in ALL_EXTRACTORS)


__all__ = ["ExtractorRegistry", "UnknownMarketplaceError", "default_registry"]
