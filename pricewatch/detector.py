"""Change detection between the stored state of a product and a new reading."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .db import TrackedProduct
    from .extractors import Reading


@dataclass(frozen=True)
class ChangeDecision:
    now_in_stock: bool      # stock value to persist
    price_dropped: bool
    restocked: bool

    @property
    def should_notify(self) -> bool:
        return self.price_dropped or self.restocked


def decide(prev: "TrackedProduct", reading: "Reading") -> ChangeDecision:
    """Compare a reading to the previous state.

    Unknown stock carries the previous value forward.  A price drop needs
    both prices and a strictly lower new one; a restock is a false -> true
    flip of the resolved stock.  Pure: no I/O, no mutation.
    """
    now_in_stock = reading.in_stock if reading.in_stock is not None else prev.last_in_stock
    price_dropped = (
        prev.last_price is not None
        and reading.price is not None
        and reading.price < prev.last_price
    )
    restocked = prev.last_in_stock is False and now_in_stock is True
    return ChangeDecision(
        now_in_stock=bool(now_in_stock),
        price_dropped=bool(price_dropped),
        restocked=restocked,
    )


__all__ = ["ChangeDecision", "decide"]
