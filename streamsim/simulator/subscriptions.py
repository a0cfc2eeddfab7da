"""Subscribed-channel tracking with an optional allow-list."""

from __future__ import annotations
from typing import FrozenSet, Iterable, List, Optional, Set


class SubscriptionTracker:
    """
    Set of channels considered live for one simulator.

    When a channel filter is given, only channels in it are ever recorded and
    the tracked state is known to be partial. Channels are never removed.
    """

    def __init__(self, channel_filter: Optional[Iterable[str]] = None):
        self._filter: Optional[FrozenSet[str]] = (
            frozenset(channel_filter) if channel_filter is not None else None
        )
        self._subscribed: Set[str] = set()

    @property
    def is_filtered(self) -> bool:
        return self._filter is not None

    @property
    def channel_filter(self) -> Optional[FrozenSet[str]]:
        return self._filter

    def allows(self, channel: str) -> bool:
        return self._filter is None or channel in self._filter

    def subscribe(self, channel: str) -> bool:
        """Record channel if the filter allows it. Returns True if recorded."""
        if not self.allows(channel):
            return False
        self._subscribed.add(channel)
        return True

    def sorted_channels(self) -> List[str]:
        return sorted(self._subscribed)

    def __contains__(self, channel: object) -> bool:
        return channel in self._subscribed

    def __len__(self) -> int:
        return len(self._subscribed)
