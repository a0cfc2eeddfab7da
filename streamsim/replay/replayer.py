"""
Deterministic capture replayer.

Feeds captured records through a simulator in arrival order:
- start -> process_start
- send  -> process_send
- msg   -> process_message_websocket (or the channel-checked variant)
- state -> process_state
- err / end are only counted

Optionally takes periodic checkpoints and hands them to a callback, so a
long capture can be split into independently resumable pieces.

Usage:
    sim = new_simulator("bitmex")
    replayer = Replayer(sim)
    stats = replayer.run(CaptureReader("capture.gz"))
    frames = replayer.checkpoint("state")
"""

from __future__ import annotations
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from streamsim.infrastructure.config import ReplayConfig
from streamsim.infrastructure.logging import get_logger
from streamsim.infrastructure.metrics import metrics
from streamsim.replay.capture import CaptureRecord, RecordType
from streamsim.simulator.base import CHANNEL_UNKNOWN, Simulator, Snapshot
from streamsim.simulator.errors import FilteredStateError

logger = get_logger(__name__)

CHECKPOINT_STATE = "state"
CHECKPOINT_WIRE = "wire"

CheckpointHandler = Callable[[int, str, List[Snapshot]], None]


@dataclass
class ReplayStats:
    """Statistics from a replay session."""
    records_processed: int = 0
    crossed_purges: int = 0
    unknown_updates: int = 0
    checkpoints_taken: int = 0
    first_timestamp: Optional[int] = None
    last_timestamp: Optional[int] = None
    duration_seconds: float = 0.0

    records_by_type: Dict[str, int] = field(default_factory=dict)
    messages_by_channel: Dict[str, int] = field(default_factory=dict)

    @property
    def is_consistent(self) -> bool:
        """True when no soft inconsistency was seen."""
        return self.crossed_purges == 0 and self.unknown_updates == 0

    def summary(self) -> str:
        return (
            f"Replayed {self.records_processed} records in {self.duration_seconds:.2f}s: "
            f"{sum(self.messages_by_channel.values())} messages, "
            f"{self.crossed_purges} crossed purges, {self.unknown_updates} unknown updates, "
            f"{self.checkpoints_taken} checkpoints"
        )


class Replayer:
    """
    Drives one simulator through a capture.

    The caller owns the simulator; records must come in capture order.
    """

    def __init__(
        self,
        simulator: Simulator,
        config: Optional[ReplayConfig] = None,
        on_checkpoint: Optional[CheckpointHandler] = None,
    ):
        """
        Args:
            simulator: Simulator to drive
            config: Replay configuration (defaults: no verification, no checkpoints)
            on_checkpoint: Called with (timestamp, kind, snapshots) for periodic checkpoints
        """
        self.simulator = simulator
        self.config = config or ReplayConfig()
        self.on_checkpoint = on_checkpoint

        if (
            self.config.checkpoint_every
            and self.config.checkpoint_kind == CHECKPOINT_STATE
            and simulator.is_filtered
        ):
            raise FilteredStateError()

        self._stats = ReplayStats()
        self._messages_since_checkpoint = 0

    @property
    def exchange(self) -> str:
        return self.simulator.exchange

    def feed(self, record: CaptureRecord) -> Optional[str]:
        """
        Apply a single record.

        Returns:
            The channel the record resolved to, or None for records
            that carry no channel
        """
        sim = self.simulator
        diag = sim.diagnostics
        purges_before = diag.crossed_purges
        unknown_before = diag.unknown_updates

        channel: Optional[str] = None
        rtype = record.record_type
        if rtype is RecordType.START:
            sim.process_start(record.message)
        elif rtype is RecordType.SEND:
            channel = sim.process_send(record.message)
        elif rtype is RecordType.MSG:
            if self.config.verify_channels and record.channel and record.channel != CHANNEL_UNKNOWN:
                sim.process_message_channel_known(record.channel, record.message)
                channel = record.channel
            else:
                channel = sim.process_message_websocket(record.message)
        elif rtype is RecordType.STATE:
            sim.process_state(record.channel, record.message)
            channel = record.channel
        elif rtype is RecordType.ERR:
            logger.warning("Capture error record", timestamp=record.timestamp, payload=record.message)

        self._account(record, channel, diag.crossed_purges - purges_before, diag.unknown_updates - unknown_before)

        if rtype is RecordType.MSG and self.config.checkpoint_every:
            self._messages_since_checkpoint += 1
            if self._messages_since_checkpoint >= self.config.checkpoint_every:
                self._periodic_checkpoint(record.timestamp)

        return channel

    def _account(
        self,
        record: CaptureRecord,
        channel: Optional[str],
        new_purges: int,
        new_unknown: int,
    ) -> None:
        stats = self._stats
        rtype = record.record_type.value
        stats.records_processed += 1
        stats.records_by_type[rtype] = stats.records_by_type.get(rtype, 0) + 1
        if stats.first_timestamp is None:
            stats.first_timestamp = record.timestamp
        stats.last_timestamp = record.timestamp

        stats.crossed_purges += new_purges
        stats.unknown_updates += new_unknown

        metrics.record_record(self.exchange, rtype)
        if record.record_type is RecordType.MSG and channel is not None:
            stats.messages_by_channel[channel] = stats.messages_by_channel.get(channel, 0) + 1
            metrics.record_message(self.exchange, channel)
        metrics.record_diagnostics(self.exchange, new_purges, new_unknown)

    def _periodic_checkpoint(self, timestamp: int) -> None:
        snapshots = self.checkpoint(self.config.checkpoint_kind)
        self._messages_since_checkpoint = 0
        if self.on_checkpoint is not None:
            self.on_checkpoint(timestamp, self.config.checkpoint_kind, snapshots)

    def run(self, records: Iterable[CaptureRecord]) -> ReplayStats:
        """
        Replay every record.

        Fatal simulator errors propagate with the offending line number logged.
        """
        start_time = time.time()
        for record in records:
            try:
                self.feed(record)
            except Exception as e:
                logger.error(
                    "Replay failed",
                    line_no=record.line_no,
                    record_type=record.record_type.value,
                    channel=record.channel,
                    error=str(e),
                )
                raise
        self._stats.duration_seconds += time.time() - start_time
        metrics.update_book_size(self.exchange, len(self.simulator.order_book))

        logger.info(self._stats.summary(), exchange=self.exchange)
        return self._stats

    def checkpoint(self, kind: str = CHECKPOINT_STATE) -> List[Snapshot]:
        """
        Snapshot the simulator.

        Args:
            kind: "state" for an internal checkpoint, "wire" for replayable frames

        Raises:
            FilteredStateError: for a state checkpoint of a filtered simulator
        """
        if kind == CHECKPOINT_STATE:
            snapshots = self.simulator.take_state_snapshot()
        elif kind == CHECKPOINT_WIRE:
            snapshots = self.simulator.take_snapshot()
        else:
            raise ValueError(f"unknown checkpoint kind: {kind}")

        self._stats.checkpoints_taken += 1
        metrics.record_snapshot(self.exchange, kind)
        logger.debug("Checkpoint taken", kind=kind, frames=len(snapshots))
        return snapshots

    def restore(self, snapshots: Iterable[Snapshot], kind: str = CHECKPOINT_STATE) -> None:
        """
        Seed the simulator from a checkpoint taken by another instance.

        Wire frames are checked against the channel they were emitted for.
        """
        for snap in snapshots:
            if kind == CHECKPOINT_STATE:
                self.simulator.process_state(snap.channel, snap.snapshot)
            elif kind == CHECKPOINT_WIRE:
                self.simulator.process_message_channel_known(snap.channel, snap.snapshot)
            else:
                raise ValueError(f"unknown checkpoint kind: {kind}")
        logger.info("Simulator restored", kind=kind, entries=len(self.simulator.order_book))

    def get_stats(self) -> ReplayStats:
        """Get current replay statistics."""
        return self._stats
