"""
Bitmex state simulator.

Tracks subscribed channels and the orderBookL2 table. Other tables are
recognized by name and otherwise ignored, so new channels never break a
replay.
"""

from __future__ import annotations
from typing import Iterable, List, Optional, Sequence

from streamsim.infrastructure.logging import get_logger
from streamsim.market.order_book import OrderEntry
from streamsim.simulator.base import (
    CHANNEL_UNKNOWN,
    STATE_CHANNEL_SUBSCRIBED,
    Line,
    Simulator,
    Snapshot,
)
from streamsim.simulator.bitmex_codec import (
    ACTION_DELETE,
    ACTION_INSERT,
    ACTION_PARTIAL,
    ACTION_UPDATE,
    TABLE_ORDER_BOOK_L2,
    BitmexOrderBookL2Element,
    decode_channel_list,
    decode_json,
    decode_order_book_elements,
    decode_root,
    decode_subscribe,
    encode_channel_list,
    encode_elements,
    encode_partial,
    encode_subscribe,
)
from streamsim.simulator.diagnostics import Diagnostics
from streamsim.simulator.errors import FilteredStateError, UnknownActionError

logger = get_logger(__name__)

BITMEX_CHANNEL_INFO = "info"
BITMEX_CHANNEL_ERROR = "error"

ORDER_BOOK_ACTIONS = frozenset({ACTION_PARTIAL, ACTION_INSERT, ACTION_UPDATE, ACTION_DELETE})


class BitmexSimulator(Simulator):
    """
    Simulator for the Bitmex realtime API.

    Usage:
        sim = BitmexSimulator()
        sim.process_message_websocket(b'{"success":true,"subscribe":"orderBookL2"}')
        sim.process_message_websocket(b'{"table":"orderBookL2","action":"partial","data":[...]}')
        frames = sim.take_snapshot()
    """

    exchange = "bitmex"

    def __init__(
        self,
        channel_filter: Optional[Iterable[str]] = None,
        diagnostics: Optional[Diagnostics] = None,
    ):
        super().__init__(channel_filter=channel_filter, diagnostics=diagnostics)

    def process_start(self, line: Line) -> None:
        # Bitmex subscriptions are part of the connection URL
        return None

    def process_send(self, line: Line) -> str:
        # The client never sends anything after connecting
        return CHANNEL_UNKNOWN

    def apply_order_book(
        self,
        action: str,
        elements: Sequence[BitmexOrderBookL2Element],
    ) -> None:
        """
        Apply an orderBookL2 delta to the book.

        Raises:
            UnknownActionError: for any action other than
                partial, insert, update or delete
        """
        if action not in ORDER_BOOK_ACTIONS:
            raise UnknownActionError(action)

        book = self.order_book
        for elem in elements:
            key = elem.key
            if action == ACTION_PARTIAL or action == ACTION_INSERT:
                book.upsert(key, OrderEntry(price=elem.price, size=elem.size))
                for purged_key, purged in book.purge_crossed(elem.symbol, elem.side, elem.price):
                    self.diagnostics.record_crossed_purge(
                        symbol=purged_key.symbol,
                        side=purged_key.side.value,
                        order_id=purged_key.order_id,
                        price=purged.price,
                        size=purged.size,
                        trigger_price=elem.price,
                        trigger_size=elem.size,
                    )
            elif action == ACTION_UPDATE:
                if not book.update_size(key, elem.size):
                    self.diagnostics.record_unknown_update(
                        symbol=elem.symbol,
                        side=elem.side.value,
                        order_id=elem.id,
                        size=elem.size,
                    )
            else:
                book.delete(key)

    def process_message_websocket(self, line: Line) -> str:
        payload = decode_json(line, "message")

        subscribe = decode_subscribe(payload)
        if subscribe.success:
            channel = subscribe.subscribe
            if self.subscriptions.subscribe(channel):
                logger.debug("Channel subscribed", channel=channel)
            return channel

        root = decode_root(payload)
        if root.info is not None:
            return BITMEX_CHANNEL_INFO
        if root.error is not None:
            return BITMEX_CHANNEL_ERROR
        if not root.table:
            return CHANNEL_UNKNOWN

        channel = root.table
        if channel == TABLE_ORDER_BOOK_L2 and self.subscriptions.allows(channel):
            elements = decode_order_book_elements(root.data)
            self.apply_order_book(root.action, elements)
        return channel

    def process_state(self, channel: str, line: Line) -> None:
        if channel == STATE_CHANNEL_SUBSCRIBED:
            for subscribed in decode_channel_list(line):
                self.subscriptions.subscribe(subscribed)
            return

        if not self.subscriptions.allows(channel):
            return

        if channel == TABLE_ORDER_BOOK_L2:
            payload = decode_json(line, "orderBookL2 state")
            self.apply_order_book(ACTION_PARTIAL, decode_order_book_elements(payload))

    def take_snapshot(self) -> List[Snapshot]:
        channels = self.subscriptions.sorted_channels()
        snapshots = [Snapshot(channel, encode_subscribe(channel)) for channel in channels]

        if TABLE_ORDER_BOOK_L2 in self.subscriptions:
            snapshots.append(Snapshot(
                TABLE_ORDER_BOOK_L2,
                encode_partial(TABLE_ORDER_BOOK_L2, self.order_book.sorted_items()),
            ))
        return snapshots

    def take_state_snapshot(self) -> List[Snapshot]:
        if self.is_filtered:
            raise FilteredStateError()

        return [
            Snapshot(
                STATE_CHANNEL_SUBSCRIBED,
                encode_channel_list(self.subscriptions.sorted_channels()),
            ),
            Snapshot(
                TABLE_ORDER_BOOK_L2,
                encode_elements(self.order_book.sorted_items()),
            ),
        ]
