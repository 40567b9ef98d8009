"""Discord webhook notifier.

Formats price-drop and restock alerts and posts them to the webhook
configured for each event kind.  An event kind whose webhook URL is empty
is silently skipped.  Delivery errors are raised to the caller.
"""
from __future__ import annotations

import logging
from typing import Optional

import requests

from . import emailer
from .utils import checked_request, get_http_session

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


@checked_request
def _post(session: requests.Session, url: str, **kwargs) -> requests.Response:
    return session.post(url, **kwargs)


def format_price(value: Optional[float]) -> str:
    if value is None:
        return UNKNOWN
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def price_drop_subject(marketplace: str) -> str:
    return f"Price Drop Alert ({marketplace})"


def restock_subject(marketplace: str) -> str:
    return f"Stock Restock Alert ({marketplace})"


def build_price_drop_message(
    product_url: str,
    previous_price: Optional[float],
    new_price: float,
    user_id: str,
    email: str,
) -> str:
    return (
        f"Harga turun untuk produk {product_url}. "
        f"Harga sebelumnya: {format_price(previous_price)}, sekarang: {format_price(new_price)}. "
        f"User: {user_id}, email: {email or UNKNOWN}."
    )


def build_restock_message(product_url: str, user_id: str, email: str) -> str:
    return (
        f"Stok kembali tersedia untuk produk {product_url}. "
        f"User: {user_id}, email: {email or UNKNOWN}."
    )


def _build_embed(subject: str, message: str, product_url: str) -> dict:
    return {
        "title": subject,
        "url": product_url,
        "description": message,
    }


class Dispatcher:
    """Sends alerts to per-event Discord webhooks.

    Construct once per pass and share it across products; pass ``session``
    to reuse an existing HTTP session.
    """

    def __init__(
        self,
        price_drop_webhook_url: Optional[str] = None,
        restock_webhook_url: Optional[str] = None,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 20,
        email_copy: bool = False,
    ):
        self.price_drop_webhook_url = (price_drop_webhook_url or "").strip()
        self.restock_webhook_url = (restock_webhook_url or "").strip()
        self.session = session or get_http_session()
        self.timeout = timeout
        self.email_copy = email_copy

    def send_price_drop(
        self,
        *,
        product_url: str,
        marketplace: str,
        previous_price: Optional[float],
        new_price: float,
        user_id: str,
        email: str,
    ) -> bool:
        subject = price_drop_subject(marketplace)
        message = build_price_drop_message(product_url, previous_price, new_price, user_id, email)
        return self._send(self.price_drop_webhook_url, subject, message, product_url, email)

    def send_restock(
        self,
        *,
        product_url: str,
        marketplace: str,
        user_id: str,
        email: str,
    ) -> bool:
        subject = restock_subject(marketplace)
        message = build_restock_message(product_url, user_id, email)
        return self._send(self.restock_webhook_url, subject, message, product_url, email)

    def _send(self, webhook_url: str, subject: str, message: str, product_url: str, email: str) -> bool:
        """Post one alert; returns False when the event kind has no destination."""
        if not webhook_url:
            logger.debug("No webhook configured for %r; skipping %s", subject, product_url)
            return False

        payload = {"content": subject, "embeds": [_build_embed(subject, message, product_url)]}
        logger.info("Sending %r for %s", subject, product_url)
        _post(self.session, webhook_url, json=payload, timeout=self.timeout)

        if self.email_copy and email and email != UNKNOWN:
            emailer.send_alert(email, subject, message)
        return True


__all__ = [
    "Dispatcher",
    "UNKNOWN",
    "format_price",
    "price_drop_subject",
    "restock_subject",
    "build_price_drop_message",
    "build_restock_message",
]
