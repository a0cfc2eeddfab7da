"""
Exchange simulator contract.

A simulator reconstructs exchange-side state (subscribed channels, order
book) from captured protocol lines fed strictly in arrival order, and
serializes it back as snapshots:

- take_snapshot: wire frames a freshly subscribing client would receive
- take_state_snapshot: internal checkpoint, restorable through process_state
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Union

from streamsim.market.order_book import OrderBookStore
from streamsim.simulator.diagnostics import Diagnostics
from streamsim.simulator.errors import ChannelMismatchError
from streamsim.simulator.subscriptions import SubscriptionTracker

# Sentinel channel for lines that cannot be attributed to a channel
CHANNEL_UNKNOWN = "!unknown"

# State channel carrying the list of subscribed channels
STATE_CHANNEL_SUBSCRIBED = "!subscribed"

Line = Union[bytes, str]


class SimulatorState(Enum):
    UNINITIALIZED = "uninitialized"
    TRACKING = "tracking"


@dataclass(frozen=True)
class Snapshot:
    """One serialized frame of a snapshot, addressed by channel."""
    channel: str
    snapshot: bytes


class Simulator(ABC):
    """
    Abstract base class for per-exchange simulators.

    Each instance exclusively owns its order book and subscription set and
    is not safe for concurrent use.
    """

    exchange: str = ""

    def __init__(
        self,
        channel_filter: Optional[Iterable[str]] = None,
        diagnostics: Optional[Diagnostics] = None,
    ):
        self.subscriptions = SubscriptionTracker(channel_filter)
        self.order_book = OrderBookStore()
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    @property
    def state(self) -> SimulatorState:
        if len(self.subscriptions) == 0:
            return SimulatorState.UNINITIALIZED
        return SimulatorState.TRACKING

    @property
    def is_filtered(self) -> bool:
        return self.subscriptions.is_filtered

    @abstractmethod
    def process_start(self, line: Line) -> None:
        """Apply a client setup frame captured before the first server response."""

    @abstractmethod
    def process_send(self, line: Line) -> str:
        """Classify a client-originated line, returning its channel."""

    @abstractmethod
    def process_message_websocket(self, line: Line) -> str:
        """Apply a server line and return the channel it resolved to."""

    def process_message_channel_known(self, channel: str, line: Line) -> None:
        """
        Apply a server line whose channel is known from elsewhere.

        Raises:
            ChannelMismatchError: if the line resolves to a different channel
        """
        resolved = self.process_message_websocket(line)
        if resolved != channel:
            raise ChannelMismatchError(resolved, channel)

    @abstractmethod
    def process_state(self, channel: str, line: Line) -> None:
        """Apply a line previously produced by take_state_snapshot."""

    @abstractmethod
    def take_snapshot(self) -> List[Snapshot]:
        """Wire-format frames equivalent to a fresh subscription."""

    @abstractmethod
    def take_state_snapshot(self) -> List[Snapshot]:
        """
        Internal checkpoint of the full state.

        Raises:
            FilteredStateError: if a channel filter is active
        """
