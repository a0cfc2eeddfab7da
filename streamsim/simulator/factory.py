"""Simulator construction by exchange identifier."""

from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Type

from streamsim.simulator.base import Simulator
from streamsim.simulator.bitmex import BitmexSimulator
from streamsim.simulator.diagnostics import Diagnostics
from streamsim.simulator.errors import UnsupportedExchangeError

SIMULATORS: Dict[str, Type[Simulator]] = {
    "bitmex": BitmexSimulator,
}


def supported_exchanges() -> List[str]:
    return sorted(SIMULATORS)


def new_simulator(
    exchange: str,
    channel_filter: Optional[Iterable[str]] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> Simulator:
    """
    Create a simulator for exchange.

    Args:
        exchange: Exchange identifier, e.g. "bitmex"
        channel_filter: Channels to track; None tracks everything
        diagnostics: Collector for soft inconsistencies (a new one if None)

    Raises:
        UnsupportedExchangeError: if no simulator exists for exchange
    """
    cls = SIMULATORS.get(exchange)
    if cls is None:
        raise UnsupportedExchangeError(exchange)
    return cls(channel_filter=channel_filter, diagnostics=diagnostics)
