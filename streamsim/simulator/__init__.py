"""
Simulator module for streamsim.

Components:
- base: Simulator contract, Snapshot and sentinel channels
- bitmex: Bitmex orderBookL2 state machine
- bitmex_codec: Bitmex frame decoding and snapshot encoding
- subscriptions: Subscribed channels with an optional filter
- diagnostics: Soft-inconsistency collector
- factory: new_simulator(exchange, channel_filter)
"""

from streamsim.simulator.base import (
    CHANNEL_UNKNOWN,
    STATE_CHANNEL_SUBSCRIBED,
    Simulator,
    SimulatorState,
    Snapshot,
)

from streamsim.simulator.bitmex import BitmexSimulator

from streamsim.simulator.diagnostics import (
    DiagnosticEvent,
    DiagnosticKind,
    Diagnostics,
)

from streamsim.simulator.errors import (
    ChannelMismatchError,
    DecodeError,
    FilteredStateError,
    SimulatorError,
    UnknownActionError,
    UnsupportedExchangeError,
)

from streamsim.simulator.factory import new_simulator, supported_exchanges

from streamsim.simulator.subscriptions import SubscriptionTracker

__all__ = [
    # Contract
    "CHANNEL_UNKNOWN",
    "STATE_CHANNEL_SUBSCRIBED",
    "Simulator",
    "SimulatorState",
    "Snapshot",
    # Exchanges
    "BitmexSimulator",
    "new_simulator",
    "supported_exchanges",
    # Support
    "DiagnosticEvent",
    "DiagnosticKind",
    "Diagnostics",
    "SubscriptionTracker",
    # Errors
    "ChannelMismatchError",
    "DecodeError",
    "FilteredStateError",
    "SimulatorError",
    "UnknownActionError",
    "UnsupportedExchangeError",
]
