"""
Captured stream reader and writer.

A capture is a text file (optionally gzipped) with one record per line:

    start\t<timestamp>\t<url>
    send\t<timestamp>\t<channel>\t<client message>
    msg\t<timestamp>\t<channel>\t<server message>
    state\t<timestamp>\t<channel>\t<checkpoint payload>
    err\t<timestamp>\t<error text>
    end\t<timestamp>

Timestamps are integer nanoseconds. Records are yielded strictly in file
order; nothing here reorders or deduplicates.

Usage:
    reader = CaptureReader("bitmex_2020-05-01.gz")
    for record in reader:
        ...
"""

from __future__ import annotations
import gzip
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, Union

from streamsim.infrastructure.logging import get_logger
from streamsim.simulator.base import Snapshot

logger = get_logger(__name__)


class RecordType(Enum):
    START = "start"
    SEND = "send"
    MSG = "msg"
    STATE = "state"
    ERR = "err"
    END = "end"


# Record types whose third field is a channel
_CHANNEL_TYPES = (RecordType.SEND, RecordType.MSG, RecordType.STATE)


class CaptureFormatError(ValueError):
    """A capture line does not follow the record layout."""

    def __init__(self, line_no: int, reason: str):
        self.line_no = line_no
        super().__init__(f"line {line_no}: {reason}")


@dataclass(frozen=True)
class CaptureRecord:
    """Single captured record."""
    record_type: RecordType
    timestamp: int
    channel: str = ""
    message: bytes = b""
    line_no: int = 0


def parse_capture_line(line: bytes, line_no: int = 0) -> CaptureRecord:
    """
    Parse one capture line (without its trailing newline).

    Raises:
        CaptureFormatError: on unknown record type or missing fields
    """
    parts = line.split(b"\t", 2)
    try:
        record_type = RecordType(parts[0].decode("ascii"))
    except (UnicodeDecodeError, ValueError) as e:
        raise CaptureFormatError(line_no, f"unknown record type {parts[0][:16]!r}") from e

    if len(parts) < 2:
        raise CaptureFormatError(line_no, "missing timestamp")
    try:
        timestamp = int(parts[1])
    except ValueError as e:
        raise CaptureFormatError(line_no, f"bad timestamp {parts[1][:32]!r}") from e

    rest = parts[2] if len(parts) > 2 else b""
    if record_type in _CHANNEL_TYPES:
        fields = rest.split(b"\t", 1)
        if len(fields) < 2:
            raise CaptureFormatError(line_no, f"{record_type.value} record without channel")
        return CaptureRecord(
            record_type=record_type,
            timestamp=timestamp,
            channel=fields[0].decode("utf-8"),
            message=fields[1],
            line_no=line_no,
        )

    return CaptureRecord(
        record_type=record_type,
        timestamp=timestamp,
        message=rest,
        line_no=line_no,
    )


def format_capture_line(record_type: RecordType, timestamp: int, channel: str, message: bytes) -> bytes:
    """Inverse of parse_capture_line for channel-carrying records."""
    if record_type not in _CHANNEL_TYPES:
        raise ValueError(f"{record_type.value} records carry no channel")
    return b"\t".join([
        record_type.value.encode("ascii"),
        str(timestamp).encode("ascii"),
        channel.encode("utf-8"),
        message,
    ]) + b"\n"


def format_snapshot_lines(
    snapshots: Iterable[Snapshot],
    timestamp: int,
    record_type: RecordType = RecordType.STATE,
) -> bytes:
    """
    Render snapshot frames as capture lines.

    State checkpoints are written as state records, wire snapshots as msg
    records so they replay like live traffic.
    """
    return b"".join(
        format_capture_line(record_type, timestamp, snap.channel, snap.snapshot)
        for snap in snapshots
    )


def iter_records(lines: Iterable[bytes]) -> Iterator[CaptureRecord]:
    """Parse raw lines, skipping blank ones."""
    for line_no, line in enumerate(lines, start=1):
        line = line.rstrip(b"\r\n")
        if not line:
            continue
        yield parse_capture_line(line, line_no)


class CaptureReader:
    """
    Reads capture records from a file.

    Files ending in .gz are decompressed transparently.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _open(self) -> BinaryIO:
        if self.path.suffix == ".gz":
            return gzip.open(self.path, "rb")
        return open(self.path, "rb")

    def __iter__(self) -> Iterator[CaptureRecord]:
        if not self.path.exists():
            raise FileNotFoundError(f"Capture file not found: {self.path}")

        logger.info("Reading capture", path=str(self.path))
        with self._open() as f:
            yield from iter_records(f)
