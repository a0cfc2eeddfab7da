"""Exceptions raised by exchange simulators."""


class SimulatorError(Exception):
    """Base class for fatal simulator errors."""


class DecodeError(SimulatorError):
    """A line could not be decoded into the expected structure."""

    def __init__(self, structure: str, reason: str):
        self.structure = structure
        self.reason = reason
        super().__init__(f"failed to decode {structure}: {reason}")


class UnknownActionError(SimulatorError):
    """A data frame carried an action other than partial/insert/update/delete."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"unknown action type '{action}'")


class ChannelMismatchError(SimulatorError):
    """The channel a line resolved to differs from the declared one."""

    def __init__(self, resolved: str, expected: str):
        self.resolved = resolved
        self.expected = expected
        super().__init__(f"channel differs: {resolved}, expected: {expected}")


class FilteredStateError(SimulatorError):
    """A state checkpoint was requested while a channel filter is active."""

    def __init__(self):
        super().__init__("channel filter is enabled, state is incomplete")


class UnsupportedExchangeError(SimulatorError):
    """No simulator exists for the requested exchange."""

    def __init__(self, exchange: str):
        self.exchange = exchange
        super().__init__(f"no simulator for exchange '{exchange}'")
