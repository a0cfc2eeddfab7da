"""
Order-id keyed order book store.

Holds every resting order of one exchange, keyed by (symbol, side, order id):
- Create-or-replace on partial/insert
- Size-only updates
- Crossed-book purge against the opposite side of a symbol
- Deterministic iteration for snapshot encoding

Usage:
    store = OrderBookStore()
    store.upsert(OrderKey("XBTUSD", Side.BUY, 42), OrderEntry(price=100.0, size=5))
    purged = store.purge_crossed("XBTUSD", Side.BUY, 100.0)
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, NamedTuple, Set, Tuple


class Side(str, Enum):
    """Order side, valued with the exchange wire spelling."""
    BUY = "Buy"
    SELL = "Sell"

    @property
    def opposite(self) -> "Side":
        return Side.SELL if self is Side.BUY else Side.BUY

    @property
    def rank(self) -> int:
        # Buy sorts before Sell
        return 0 if self is Side.BUY else 1


class OrderKey(NamedTuple):
    """Composite key of a resting order."""
    symbol: str
    side: Side
    order_id: int

    def sort_key(self) -> Tuple[str, int, int]:
        return (self.symbol, self.side.rank, self.order_id)


@dataclass
class OrderEntry:
    """Price and remaining size of a resting order."""
    price: float
    size: int


class OrderBookStore:
    """
    Flat mapping of OrderKey -> OrderEntry.

    A secondary (symbol, side) -> order ids index keeps the crossed-book scan
    confined to one side of one symbol.
    """

    def __init__(self):
        self._entries: Dict[OrderKey, OrderEntry] = {}
        self._index: Dict[Tuple[str, Side], Set[int]] = defaultdict(set)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[OrderKey]:
        return iter(self._entries)

    def get(self, key: OrderKey) -> OrderEntry | None:
        return self._entries.get(key)

    def upsert(self, key: OrderKey, entry: OrderEntry) -> None:
        """Create the entry or replace the existing one at key."""
        self._entries[key] = entry
        self._index[(key.symbol, key.side)].add(key.order_id)

    def update_size(self, key: OrderKey, size: int) -> bool:
        """
        Change the size of an existing entry.

        Returns:
            False if no entry exists at key (nothing is created)
        """
        entry = self._entries.get(key)
        if entry is None:
            return False
        entry.size = size
        return True

    def delete(self, key: OrderKey) -> OrderEntry | None:
        """Remove the entry at key; missing keys are ignored."""
        entry = self._entries.pop(key, None)
        if entry is not None:
            ids = self._index.get((key.symbol, key.side))
            if ids is not None:
                ids.discard(key.order_id)
                if not ids:
                    del self._index[(key.symbol, key.side)]
        return entry

    def purge_crossed(
        self,
        symbol: str,
        incoming_side: Side,
        price: float,
    ) -> List[Tuple[OrderKey, OrderEntry]]:
        """
        Remove opposite-side orders of symbol that cross an incoming order.

        An incoming Buy at price crosses every Sell priced strictly below it;
        an incoming Sell crosses every Buy priced strictly above it.

        Returns:
            Purged (key, entry) pairs in ascending order id
        """
        opposite = incoming_side.opposite
        ids = self._index.get((symbol, opposite))
        if not ids:
            return []

        crossed: List[Tuple[OrderKey, OrderEntry]] = []
        for order_id in sorted(ids):
            key = OrderKey(symbol, opposite, order_id)
            entry = self._entries[key]
            if incoming_side is Side.BUY and entry.price < price:
                crossed.append((key, entry))
            elif incoming_side is Side.SELL and entry.price > price:
                crossed.append((key, entry))

        for key, _ in crossed:
            self.delete(key)
        return crossed

    def sorted_items(self) -> List[Tuple[OrderKey, OrderEntry]]:
        """Entries ordered by symbol, then Buy before Sell, then order id."""
        return sorted(self._entries.items(), key=lambda item: item[0].sort_key())

    def as_dict(self) -> Dict[OrderKey, Tuple[float, int]]:
        """Plain (price, size) view for comparing two stores."""
        return {key: (entry.price, entry.size) for key, entry in self._entries.items()}

    def clear(self) -> None:
        self._entries.clear()
        self._index.clear()
