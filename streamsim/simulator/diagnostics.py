"""
Soft-inconsistency reporting.

Crossed-book purges and updates for unknown orders do not stop processing.
They are collected here so callers can count or assert on them, and mirrored
to the structured log.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from streamsim.infrastructure.logging import get_logger

logger = get_logger(__name__)


class DiagnosticKind(Enum):
    CROSSED_PURGE = "crossed_purge"
    UNKNOWN_UPDATE = "unknown_update"


@dataclass(frozen=True)
class DiagnosticEvent:
    """One soft inconsistency found while applying a delta."""
    kind: DiagnosticKind
    symbol: str
    side: str
    order_id: int
    price: Optional[float] = None
    size: Optional[int] = None
    # Incoming order that caused a purge
    trigger_price: Optional[float] = None
    trigger_size: Optional[int] = None


@dataclass
class Diagnostics:
    """
    Collector for soft inconsistencies of one simulator.

    keep_events=False keeps only the counters, for long captures where the
    event list would grow without bound.
    """
    keep_events: bool = True
    crossed_purges: int = 0
    unknown_updates: int = 0
    events: List[DiagnosticEvent] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.crossed_purges + self.unknown_updates

    def record_crossed_purge(
        self,
        symbol: str,
        side: str,
        order_id: int,
        price: float,
        size: int,
        trigger_price: float,
        trigger_size: int,
    ) -> None:
        self.crossed_purges += 1
        logger.warning(
            "Crossed order purged",
            symbol=symbol,
            side=side,
            order_id=order_id,
            price=price,
            size=size,
            trigger_price=trigger_price,
            trigger_size=trigger_size,
        )
        if self.keep_events:
            self.events.append(DiagnosticEvent(
                kind=DiagnosticKind.CROSSED_PURGE,
                symbol=symbol,
                side=side,
                order_id=order_id,
                price=price,
                size=size,
                trigger_price=trigger_price,
                trigger_size=trigger_size,
            ))

    def record_unknown_update(
        self,
        symbol: str,
        side: str,
        order_id: int,
        size: int,
    ) -> None:
        self.unknown_updates += 1
        logger.warning(
            "Update for unknown order id",
            symbol=symbol,
            side=side,
            order_id=order_id,
            size=size,
        )
        if self.keep_events:
            self.events.append(DiagnosticEvent(
                kind=DiagnosticKind.UNKNOWN_UPDATE,
                symbol=symbol,
                side=side,
                order_id=order_id,
                size=size,
            ))

    def of_kind(self, kind: DiagnosticKind) -> List[DiagnosticEvent]:
        return [e for e in self.events if e.kind is kind]

    def reset(self) -> None:
        self.crossed_purges = 0
        self.unknown_updates = 0
        self.events.clear()
