from __future__ import annotations

import functools
import logging
import time

from . import config
from .db import Store
from .monitor import Monitor, RunSummary
from .notifier import Dispatcher
from .utils import fetch_page, get_http_session


def setup_logging() -> None:
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def handler() -> RunSummary:
    """Run one full pass over every tracked product.

    This is the scheduled trigger: validate config, wire the store, HTTP
    session and notifier once, then check each product.
    """
    config.validate()
    logger = logging.getLogger(__name__)
    logger.info(
        "Price watch start (products_table=%s, users_table=%s, price_drop_webhook=%s, restock_webhook=%s)",
        config.PRODUCTS_TABLE,
        config.USERS_TABLE,
        bool(config.PRICE_DROP_WEBHOOK_URL),
        bool(config.RESTOCK_WEBHOOK_URL),
    )

    store = Store(config.SQLITE_DB_PATH, config.PRODUCTS_TABLE, config.USERS_TABLE)
    store.init_db()

    session = get_http_session()
    try:
        dispatcher = Dispatcher(
            config.PRICE_DROP_WEBHOOK_URL,
            config.RESTOCK_WEBHOOK_URL,
            session=session,
            email_copy=config.EMAIL_ENABLED,
        )
        monitor = Monitor(
            store,
            dispatcher,
            functools.partial(fetch_page, session, timeout=config.FETCH_TIMEOUT_SECONDS),
            page_size=config.SCAN_PAGE_SIZE,
        )
        summary = monitor.run()
    finally:
        session.close()

    logger.info(
        "Price watch finished (processed=%d, updated=%d, skipped=%d, failed=%d)",
        summary.processed, summary.updated, summary.skipped, summary.failed,
    )
    return summary


def main() -> None:
    """Run a single pass, or loop every CHECK_INTERVAL_MINUTES when it is positive."""
    setup_logging()
    logger = logging.getLogger(__name__)

    if config.CHECK_INTERVAL_MINUTES <= 0:
        handler()
        return

    while True:
        try:
            handler()
        except config.ConfigError:
            raise
        except Exception:
            logger.exception("Unexpected error during price watch pass.")
        logger.info("Sleeping for %d minutes before next pass.", config.CHECK_INTERVAL_MINUTES)
        time.sleep(config.CHECK_INTERVAL_MINUTES * 60)


if __name__ == "__main__":
    main()
