"""
Market module for streamsim.

Contains:
- order_book: Order-id keyed order book store with crossed-book purge
"""

from streamsim.market.order_book import (
    OrderBookStore,
    OrderEntry,
    OrderKey,
    Side,
)

__all__ = [
    "OrderBookStore",
    "OrderEntry",
    "OrderKey",
    "Side",
]
