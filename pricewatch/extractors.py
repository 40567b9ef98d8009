"""Marketplace page extractors.

Each extractor turns raw product-page markup into a :class:`Reading`.
Price strategies are tried in order and the first one that yields a
number wins; later strategies are not consulted.  Stock is resolved
independently of price.

Extractors never raise.  A strategy that fails on malformed or truncated
markup is treated as "not found" and the next strategy runs.
"""

from __future__ import annotations

import json
import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reading:
    price: Optional[float]      # None means extraction failed, not "free"
    in_stock: Optional[bool]    # None means unknown


PriceStrategy = Callable[[str], Optional[float]]


_LEADING_NUMBER_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")


def _leading_float(text: str) -> float | None:
    """Parse the number at the start of text, ignoring anything after it."""
    m = _LEADING_NUMBER_RE.match(text or "")
    return float(m.group(0)) if m else None


def _parse_price_number(text: str) -> float | None:
    """Keep digits, dots and commas, drop grouping commas, parse the leading number."""
    if not text:
        return None
    t = re.sub(r"[^0-9\.,]", "", str(text)).replace(",", "")
    return _leading_float(t)


def _parse_digits(text) -> int | None:
    digits = re.sub(r"\D", "", str(text or ""))
    if not digits:
        return None
    return int(digits)


def _visible_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return soup.get_text(" ", strip=True)


class Extractor(ABC):
    """Base class for marketplace extractors.

    Subclasses set the class attributes and implement
    :meth:`price_strategies` (ordered, most structured first) and
    :meth:`_stock`.
    """

    slug: str = ""           # registry key, e.g. "amazon"
    name: str = ""           # display name used in alert subjects
    host_pattern: re.Pattern = re.compile(r"(?!)")
    price_field: str = "last_price"  # store column holding this marketplace's last price

    def extract(self, html: str) -> Reading:
        html = html or ""
        return Reading(price=self.extract_price(html), in_stock=self.extract_stock(html))

    def extract_price(self, html: str) -> Optional[float]:
        for strategy in self.price_strategies():
            try:
                value = strategy(html)
            except Exception:
                logger.debug("%s: price strategy %s failed", self.slug, strategy.__name__, exc_info=True)
                continue
            if value is not None:
                logger.debug("%s: price %s from %s", self.slug, value, strategy.__name__)
                return value
        return None

    def extract_stock(self, html: str) -> Optional[bool]:
        try:
            return self._stock(html)
        except Exception:
            logger.debug("%s: stock detection failed", self.slug, exc_info=True)
            return None

    def matches_host(self, host: str) -> bool:
        return bool(self.host_pattern.search(host or ""))

    @abstractmethod
    def price_strategies(self) -> Sequence[PriceStrategy]:
        ...

    @abstractmethod
    def _stock(self, html: str) -> Optional[bool]:
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} slug={self.slug!r}>"


# ---- Amazon ------------------------------------------------------------------

class AmazonExtractor(Extractor):
    """Amazon product pages: dense JSON blobs first, then buy-box and summary text."""

    slug = "amazon"
    name = "Amazon"
    host_pattern = re.compile(r"(^|\.)amazon\.[a-z.]+$", re.IGNORECASE)
    price_field = "last_price"

    _AMOUNT_RE = re.compile(r'"priceAmount"\s*:\s*([0-9.]+)')
    _BUYBOX_RE = re.compile(r'"desktop_buybox_group_1"\s*:\s*\[\{"displayPrice":"([^"]+)"')
    _SUMMARY_RE = re.compile(r"Product Summary:[\s\S]{0,200}?One-time purchase:\s*([^<\n]+)")
    _IN_STOCK_RE = re.compile(r"In Stock", re.IGNORECASE)
    _UNAVAILABLE_RE = re.compile(r"Currently unavailable", re.IGNORECASE)

    def price_strategies(self) -> Sequence[PriceStrategy]:
        return (self._price_amount, self._buybox_display_price, self._summary_price)

    def _price_amount(self, html: str) -> Optional[float]:
        m = self._AMOUNT_RE.search(html)
        return _leading_float(m.group(1)) if m else None

    def _buybox_display_price(self, html: str) -> Optional[float]:
        m = self._BUYBOX_RE.search(html)
        return _parse_price_number(m.group(1)) if m else None

    def _summary_price(self, html: str) -> Optional[float]:
        m = self._SUMMARY_RE.search(html)
        return _parse_price_number(m.group(1)) if m else None

    def _stock(self, html: str) -> Optional[bool]:
        if self._IN_STOCK_RE.search(html):
            return True
        if self._UNAVAILABLE_RE.search(html):
            return False
        return None


# ---- Tokopedia ---------------------------------------------------------------

class TokopediaExtractor(Extractor):
    """Tokopedia product pages: `price=` URL parameter first, then Rp-formatted text."""

    slug = "tokopedia"
    name = "Tokopedia"
    host_pattern = re.compile(r"(^|\.)tokopedia\.com$", re.IGNORECASE)
    price_field = "last_price_tokopedia"

    # `price=` must not be the tail of a longer name such as `min_price=`.
    _PRICE_PARAM_RE = re.compile(r"(?<![A-Za-z0-9_])price=(\d+(?:\.\d+)?)")
    _RUPIAH_RE = re.compile(r"Rp\s?(\d{1,3}(?:\.\d{3})+|\d+)")
    _QTY_RE = re.compile(r"Stok\s*:\s*(\d+)", re.IGNORECASE)
    _SOLD_OUT_RE = re.compile(r"\b(?:stok habis|sold out|habis)\b", re.IGNORECASE)

    def price_strategies(self) -> Sequence[PriceStrategy]:
        return (self._price_param, self._rupiah_text)

    def _price_param(self, html: str) -> Optional[float]:
        m = self._PRICE_PARAM_RE.search(html)
        if not m:
            return None
        # Round half up to whole rupiah.
        return math.floor(float(m.group(1)) + 0.5)

    def _rupiah_text(self, html: str) -> Optional[float]:
        m = self._RUPIAH_RE.search(_visible_text(html))
        if not m:
            return None
        return _parse_digits(m.group(1).replace(".", ""))

    def _stock(self, html: str) -> Optional[bool]:
        text = _visible_text(html)
        m = self._QTY_RE.search(text)
        if m:
            return int(m.group(1)) > 0
        if self._SOLD_OUT_RE.search(text):
            return False
        return None


# ---- Lazada ------------------------------------------------------------------

class LazadaExtractor(Extractor):
    """Lazada product pages: `pdpTrackingData` script variable first, then raw `pdt_price` key."""

    slug = "lazada"
    name = "Lazada"
    host_pattern = re.compile(r"(^|\.)lazada\.[a-z.]+$", re.IGNORECASE)
    price_field = "last_price_lazada"

    _TRACKING_DQ_RE = re.compile(r'var\s+pdpTrackingData\s*=\s*"((?:[^"\\]|\\.)*)"')
    _TRACKING_SQ_RE = re.compile(r"var\s+pdpTrackingData\s*=\s*'([^']*)'")
    # Matches both `"pdt_price":"..."` and the escaped `pdt_price\":\"...\"`.
    _RAW_PRICE_RE = re.compile(r'pdt_price\\?"\s*:\s*\\?"([^"\\]+)')
    _OUT_OF_STOCK_RE = re.compile(r"Stok habis", re.IGNORECASE)
    _IN_STOCK_RE = re.compile(r"schema\.org/InStock", re.IGNORECASE)

    def price_strategies(self) -> Sequence[PriceStrategy]:
        return (self._tracking_data_price, self._raw_price_key)

    def _tracking_data_price(self, html: str) -> Optional[float]:
        m = self._TRACKING_DQ_RE.search(html)
        if m:
            # Double-quoted JS string: decode escapes before parsing the JSON inside.
            payload = json.loads(f'"{m.group(1)}"')
        else:
            m = self._TRACKING_SQ_RE.search(html)
            if not m:
                return None
            payload = m.group(1)
        logger.debug("lazada: tracking snippet %s", payload[:200])
        tracking = json.loads(payload)
        if not isinstance(tracking, dict):
            return None
        value = tracking.get("pdt_price")
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            return None
        return _parse_digits(value)

    def _raw_price_key(self, html: str) -> Optional[float]:
        m = self._RAW_PRICE_RE.search(html)
        return _parse_digits(m.group(1)) if m else None

    def _stock(self, html: str) -> Optional[bool]:
        if self._OUT_OF_STOCK_RE.search(html):
            return False
        if self._IN_STOCK_RE.search(html):
            return True
        return None


ALL_EXTRACTORS = (AmazonExtractor, TokopediaExtractor, LazadaExtractor)

__all__ = [
    "Reading",
    "Extractor",
    "AmazonExtractor",
    "TokopediaExtractor",
    "LazadaExtractor",
    "ALL_EXTRACTORS",
]
