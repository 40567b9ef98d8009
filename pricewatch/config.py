"""Configuration loader.

Reads environment variables and `.env` to configure the service.
"""

from __future__ import annotations

import os
import re
from typing import Optional
from pathlib import Path

from dotenv import load_dotenv

# Load variables from a .env file if present (project root).
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


# ---- Store -------------------------------------------------------------------

# Table holding tracked products (product_url, user_id, last prices, in_stock).
PRODUCTS_TABLE: str = (_get_env("PRODUCTS_TABLE", "") or "").strip()

# Table holding users (user_id, email).
USERS_TABLE: str = (_get_env("USERS_TABLE", "") or "").strip()

# Path to SQLite database.
SQLITE_DB_PATH: str = _get_env("SQLITE_DB_PATH", "pricewatch.db")

# Records requested per scan page.
SCAN_PAGE_SIZE: int = _parse_int(_get_env("SCAN_PAGE_SIZE"), 100)

# ---- Notifications -----------------------------------------------------------

# Discord webhook for price drops. Empty disables price-drop alerts.
PRICE_DROP_WEBHOOK_URL: str = (_get_env("PRICE_DROP_WEBHOOK_URL", "") or "").strip()

# Discord webhook for restocks. Empty disables restock alerts.
RESTOCK_WEBHOOK_URL: str = (_get_env("RESTOCK_WEBHOOK_URL", "") or "").strip()

# ---- Fetching & scheduling ---------------------------------------------------

# Timeout (seconds) for each product page fetch.
FETCH_TIMEOUT_SECONDS: int = _parse_int(_get_env("FETCH_TIMEOUT_SECONDS"), 20)

# Minutes between passes when running main(); 0 runs a single pass and exits.
CHECK_INTERVAL_MINUTES: int = _parse_int(_get_env("CHECK_INTERVAL_MINUTES"), 0)

# Logging level: DEBUG, INFO, WARNING, ERROR.
LOG_LEVEL: str = _get_env("LOG_LEVEL", "INFO")

# ---- Email copy to product owner ---------------------------------------------

EMAIL_ENABLED: bool = _parse_bool(_get_env("EMAIL_ENABLED", "false"), False)
EMAIL_SMTP_HOST: str = _get_env("EMAIL_SMTP_HOST", "smtp.gmail.com")
EMAIL_SMTP_PORT: int = _parse_int(_get_env("EMAIL_SMTP_PORT"), 587)  # 587 (TLS) or 465 (SSL)
EMAIL_USE_TLS: bool = _parse_bool(_get_env("EMAIL_USE_TLS", "true"), True)
EMAIL_USERNAME: str | None = _get_env("EMAIL_USERNAME")
EMAIL_PASSWORD: str | None = _get_env("EMAIL_PASSWORD")  # app password if using Gmail
EMAIL_FROM: str | None = _get_env("EMAIL_FROM")
EMAIL_SUBJECT_PREFIX: str = _get_env("EMAIL_SUBJECT_PREFIX", "[PriceWatch]")

# ---- Validation --------------------------------------------------------------

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate() -> None:
    """Validate required configuration parameters."""
    if not PRODUCTS_TABLE or not USERS_TABLE:
        raise ConfigError(
            "PRODUCTS_TABLE and USERS_TABLE must be set. See .env.example for details."
        )
    for name, value in (("PRODUCTS_TABLE", PRODUCTS_TABLE), ("USERS_TABLE", USERS_TABLE)):
        if not _IDENTIFIER_RE.match(value):
            raise ConfigError(f"{name} must be a plain table name, got {value!r}")


__all__ = [
    # Store
    "PRODUCTS_TABLE",
    "USERS_TABLE",
    "SQLITE_DB_PATH",
    "SCAN_PAGE_SIZE",
    # Notifications
    "PRICE_DROP_WEBHOOK_URL",
    "RESTOCK_WEBHOOK_URL",
    # Fetching & scheduling
    "FETCH_TIMEOUT_SECONDS",
    "CHECK_INTERVAL_MINUTES",
    "LOG_LEVEL",
    # Email
    "EMAIL_ENABLED", "EMAIL_SMTP_HOST", "EMAIL_SMTP_PORT", "EMAIL_USE_TLS",
    "EMAIL_USERNAME", "EMAIL_PASSWORD", "EMAIL_FROM", "EMAIL_SUBJECT_PREFIX",
    # Helpers
    "ConfigError",
    "validate",
]
