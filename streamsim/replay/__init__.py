"""
Replay module for streamsim.

Components:
- capture: Captured stream record parsing and snapshot line rendering
- replayer: Deterministic driver feeding records to a simulator
"""

from streamsim.replay.capture import (
    CaptureFormatError,
    CaptureReader,
    CaptureRecord,
    RecordType,
    format_capture_line,
    format_snapshot_lines,
    iter_records,
    parse_capture_line,
)

from streamsim.replay.replayer import (
    CHECKPOINT_STATE,
    CHECKPOINT_WIRE,
    Replayer,
    ReplayStats,
)

__all__ = [
    # Capture
    "CaptureFormatError",
    "CaptureReader",
    "CaptureRecord",
    "RecordType",
    "format_capture_line",
    "format_snapshot_lines",
    "iter_records",
    "parse_capture_line",
    # Replayer
    "CHECKPOINT_STATE",
    "CHECKPOINT_WIRE",
    "Replayer",
    "ReplayStats",
]
