"""SQLite persistence layer for tracked products and their owners."""

from __future__ import annotations

import re
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .extractors import ALL_EXTRACTORS

# One last-price column per marketplace.
PRICE_FIELDS = tuple(dict.fromkeys(cls.price_field for cls in ALL_EXTRACTORS))

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class TrackedProduct:
    url: str
    owner_id: str
    last_price: Optional[float] = None
    last_in_stock: bool = False
    updated_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any], price_field: str) -> "TrackedProduct":
        """Build from a scanned record; non-numeric prices and non-bool stock count as absent."""
        price = record.get(price_field)
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            price = None
        in_stock = record.get("in_stock")
        return cls(
            url=record["product_url"],
            owner_id=record["user_id"],
            last_price=price,
            last_in_stock=in_stock if isinstance(in_stock, bool) else False,
            updated_at=record.get("updated_at"),
        )


@dataclass
class ScanPage:
    items: List[Dict[str, Any]]
    last_key: Optional[str]  # None once the table is exhausted


class Store:
    """Products/users store backed by a single SQLite file."""

    def __init__(self, db_path: str, products_table: str, users_table: str):
        for table in (products_table, users_table):
            if not _IDENTIFIER_RE.match(table or ""):
                raise ValueError(f"Invalid table name: {table!r}")
        self.db_path = db_path
        self.products_table = products_table
        self.users_table = users_table

    def _get_connection(self) -> sqlite3.Connection:
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they don't exist."""
        price_cols = ",\n".join(f"            {col} REAL" for col in PRICE_FIELDS)
        with self._get_connection() as conn:
            conn.execute(f"""
          CREATE TABLE IF NOT EXISTS {self.products_table} (
            product_url TEXT PRIMARY KEY,
            user_id TEXT,
            marketplace TEXT,
{price_cols},
            in_stock INTEGER,
            updated_at TEXT
          )
        """)
            conn.execute(f"""
          CREATE TABLE IF NOT EXISTS {self.users_table} (
            user_id TEXT PRIMARY KEY,
            email TEXT
          )
        """)
            conn.commit()

    def scan_products(self, start_key: Optional[str] = None, limit: int = 100) -> ScanPage:
        """Return one page of product records ordered by product_url.

        Pass the returned ``last_key`` back as ``start_key`` to continue.
        """
        limit = max(1, int(limit))
        with self._get_connection() as conn:
            if start_key is None:
                cur = conn.execute(
                    f"SELECT * FROM {self.products_table} ORDER BY product_url LIMIT ?",
                    (limit,),
                )
            else:
                cur = conn.execute(
                    f"SELECT * FROM {self.products_table} WHERE product_url > ? "
                    f"ORDER BY product_url LIMIT ?",
                    (start_key, limit),
                )
            rows = cur.fetchall()

        items = [self._row_to_record(r) for r in rows]
        last_key = items[-1]["product_url"] if len(items) == limit else None
        return ScanPage(items=items, last_key=last_key)

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> Dict[str, Any]:
        record = dict(row)
        if record.get("in_stock") is not None:
            record["in_stock"] = bool(record["in_stock"])
        return record

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._get_connection() as conn:
            cur = conn.execute(
                f"SELECT user_id, email FROM {self.users_table} WHERE user_id = ? LIMIT 1",
                (user_id,),
            )
            row = cur.fetchone()
            return dict(row) if row else None

    def update_product(
        self,
        product_url: str,
        *,
        price_field: str,
        price: float,
        in_stock: bool,
        updated_at: str,
    ) -> None:
        """
        Persist the latest reading for one product.
        updated_at never moves backwards: an older timestamp keeps the stored one.
        """
        if price_field not in PRICE_FIELDS:
            raise ValueError(f"Unknown price field: {price_field!r}")
        with self._get_connection() as conn:
            conn.execute(f"""
                UPDATE {self.products_table}
                   SET {price_field} = ?,
                       in_stock = ?,
                       updated_at = CASE
                                      WHEN updated_at IS NULL OR updated_at < ? THEN ?
                                      ELSE updated_at
                                    END
                 WHERE product_url = ?
            """, (float(price), int(bool(in_stock)), updated_at, updated_at, product_url))
            conn.commit()

    def track_product(self, product_url: str, user_id: str, marketplace: Optional[str] = None) -> None:
        """Start tracking a product; re-tracking keeps its price/stock history."""
        with self._get_connection() as conn:
            conn.execute(f"""
                INSERT INTO {self.products_table} (product_url, user_id, marketplace)
                VALUES (?, ?, ?)
                ON CONFLICT(product_url) DO UPDATE SET
                  user_id     = excluded.user_id,
                  marketplace = COALESCE(excluded.marketplace, {self.products_table}.marketplace)
            """, (product_url, user_id, marketplace))
            conn.commit()

    def upsert_user(self, user_id: str, email: Optional[str]) -> None:
        with self._get_connection() as conn:
            conn.execute(f"""
                INSERT INTO {self.users_table} (user_id, email) VALUES (?, ?)
                ON CONFLICT(user_id) DO UPDATE SET email = excluded.email
            """, (user_id, email))
            conn.commit()


__all__ = [
    "PRICE_FIELDS",
    "TrackedProduct",
    "ScanPage",
    "Store",
]
