"""Per-product check cycle over the whole tracked-product table.

For every record: fetch the page, extract a reading, decide what changed,
send alerts, then persist the new state.  Records are processed one at a
time.  A failure on one record is logged and leaves that record untouched;
the pass carries on with the next one.
"""

from __future__ import annotations

import datetime as _dt
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from .db import Store, TrackedProduct
from .detector import decide
from .notifier import UNKNOWN, Dispatcher
from .registry import ExtractorRegistry, UnknownMarketplaceError, default_registry

logger = logging.getLogger(__name__)

UPDATED, SKIPPED, FAILED = "updated", "skipped", "failed"


def _utcnow_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="microseconds")


@dataclass
class RunSummary:
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0

    def count(self, outcome: str) -> None:
        self.processed += 1
        if outcome == UPDATED:
            self.updated += 1
        elif outcome == SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1


class Monitor:
    """Runs check passes against a store.

    ``fetch`` takes a product URL and returns the page markup, raising on
    failure; it is expected to enforce its own timeout.
    """

    def __init__(
        self,
        store: Store,
        dispatcher: Dispatcher,
        fetch: Callable[[str], str],
        *,
        registry: Optional[ExtractorRegistry] = None,
        page_size: int = 100,
        clock: Callable[[], str] = _utcnow_iso,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.fetch = fetch
        self.registry = registry or default_registry()
        self.page_size = page_size
        self.clock = clock

    def run(self) -> RunSummary:
        """Scan every page of the products table and check each record."""
        summary = RunSummary()
        start_key = None
        while True:
            page = self.store.scan_products(start_key=start_key, limit=self.page_size)
            for record in page.items:
                summary.count(self.process(record))
            if page.last_key is None:
                break
            start_key = page.last_key
        return summary

    def process(self, record: Mapping[str, Any]) -> str:
        """Check one record and return its outcome (updated/skipped/failed)."""
        product_url = record.get("product_url")
        user_id = record.get("user_id")
        if not product_url or not user_id:
            logger.warning("Skipping product with missing url/user_id: %s", dict(record))
            return SKIPPED

        try:
            extractor = self.registry.resolve(record)
        except UnknownMarketplaceError as e:
            logger.warning("Skipping %s: %s", product_url, e)
            return SKIPPED

        product = TrackedProduct.from_record(record, extractor.price_field)
        try:
            logger.info(
                "Checking product %s (user=%s, marketplace=%s, last_price=%s)",
                product.url, product.owner_id, extractor.slug, product.last_price,
            )
            html = self.fetch(product.url)
            reading = extractor.extract(html)
            if reading.price is None:
                logger.warning("Could not extract price from %s, skipping", product.url)
                return SKIPPED

            decision = decide(product, reading)
            if decision.should_notify:
                email = self._owner_email(product.owner_id)
                if decision.price_dropped:
                    self.dispatcher.send_price_drop(
                        product_url=product.url,
                        marketplace=extractor.name,
                        previous_price=product.last_price,
                        new_price=reading.price,
                        user_id=product.owner_id,
                        email=email,
                    )
                if decision.restocked:
                    self.dispatcher.send_restock(
                        product_url=product.url,
                        marketplace=extractor.name,
                        user_id=product.owner_id,
                        email=email,
                    )

            self.store.update_product(
                product.url,
                price_field=extractor.price_field,
                price=reading.price,
                in_stock=decision.now_in_stock,
                updated_at=self.clock(),
            )
            logger.debug(
                "Updated %s: price=%s in_stock=%s dropped=%s restocked=%s",
                product.url, reading.price, decision.now_in_stock,
                decision.price_dropped, decision.restocked,
            )
            return UPDATED
        except Exception:
            logger.exception("Error processing product %s", product.url)
            return FAILED

    def _owner_email(self, user_id: str) -> str:
        user: Optional[Dict[str, Any]] = self.store.get_user(user_id)
        return (user or {}).get("email") or UNKNOWN


__all__ = ["Monitor", "RunSummary", "UPDATED", "SKIPPED", "FAILED"]
