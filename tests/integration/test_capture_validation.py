"""
End-to-end capture validation.

Writes a small Bitmex capture to disk, runs the CLI over it and resumes a
fresh simulator from the snapshot it wrote.
"""

import json

import pytest

import streamsim.main as cli
from streamsim.replay.capture import CaptureReader, RecordType
from streamsim.replay.replayer import Replayer
from streamsim.simulator import BitmexSimulator


def line(record_type, ts, channel, payload):
    return f"{record_type}\t{ts}\t{channel}\t{json.dumps(payload)}\n"


def order(order_id, side, price=None, size=None, symbol="XBTUSD"):
    elem = {"symbol": symbol, "id": order_id, "side": side}
    if size is not None:
        elem["size"] = size
    if price is not None:
        elem["price"] = price
    return elem


def book(action, *elements):
    return {"table": "orderBookL2", "action": action, "data": list(elements)}


HEAD = (
    "start\t1000\twss://www.bitmex.com/realtime?subscribe=orderBookL2,trade\n"
    + line("msg", 1001, "info", {"info": "Welcome to the BitMEX Realtime API.", "version": "2020-04-30"})
    + line("msg", 1002, "orderBookL2", {"success": True, "subscribe": "orderBookL2",
                                        "request": {"op": "subscribe", "args": ["orderBookL2"]}})
    + line("msg", 1003, "trade", {"success": True, "subscribe": "trade",
                                  "request": {"op": "subscribe", "args": ["trade"]}})
    + line("msg", 1004, "orderBookL2", book(
        "partial",
        order(8799285500, "Sell", 7147.5, 40),
        order(8799285550, "Buy", 7144.5, 100),
        order(8799285600, "Buy", 7144.0, 25),
    ))
)

TAIL = (
    line("msg", 1005, "trade", {"table": "trade", "action": "insert",
                                "data": [{"symbol": "XBTUSD", "side": "Buy", "size": 1, "price": 7147.5}]})
    + line("msg", 1006, "orderBookL2", book("update", order(8799285550, "Buy", size=80)))
    + line("msg", 1007, "orderBookL2", book("insert", order(8799285700, "Sell", 7148.0, 5)))
    + line("msg", 1008, "orderBookL2", book("delete", order(8799285600, "Buy")))
    + "end\t1009\n"
)


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    # Keep structlog on its default configuration across tests
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)


@pytest.fixture
def clean_capture(tmp_path):
    path = tmp_path / "bitmex.tsv"
    path.write_text(HEAD + TAIL)
    return path


@pytest.fixture
def crossed_capture(tmp_path):
    path = tmp_path / "bitmex_crossed.tsv"
    path.write_text(
        HEAD
        + line("msg", 1005, "orderBookL2", book("insert", order(1, "Buy", 7150.0, 3)))
        + line("msg", 1006, "orderBookL2", book("update", order(2, "Sell", size=3)))
    )
    return path


def replay(path):
    sim = BitmexSimulator()
    Replayer(sim).run(CaptureReader(path))
    return sim


class TestValidate:
    """CLI exit codes and snapshot output."""

    def test_state_snapshot_resumes(self, clean_capture, tmp_path):
        out = tmp_path / "state.tsv"
        assert cli.main([str(clean_capture), "--output", str(out), "--verify-channels"]) == cli.EXIT_OK

        records = list(CaptureReader(out))
        assert [r.record_type for r in records] == [RecordType.STATE, RecordType.STATE]
        assert all(r.timestamp == 1009 for r in records)

        resumed = BitmexSimulator()
        Replayer(resumed).run(records)
        expected = replay(clean_capture)
        assert resumed.order_book.as_dict() == expected.order_book.as_dict()
        assert resumed.subscriptions.sorted_channels() == ["orderBookL2", "trade"]

    def test_wire_snapshot_equals_resubscribe(self, clean_capture, tmp_path):
        out = tmp_path / "wire.tsv"
        assert cli.main([str(clean_capture), "--snapshot", "wire", "--output", str(out)]) == cli.EXIT_OK

        records = list(CaptureReader(out))
        assert [r.channel for r in records] == ["orderBookL2", "trade", "orderBookL2"]
        assert all(r.record_type is RecordType.MSG for r in records)

        resumed = BitmexSimulator()
        Replayer(resumed).run(records)
        assert resumed.take_snapshot() == replay(clean_capture).take_snapshot()

    def test_resume_then_continue_matches_full_replay(self, tmp_path):
        """Checkpoint after HEAD, replay TAIL on a restored instance."""
        head = tmp_path / "head.tsv"
        head.write_text(HEAD)
        tail = tmp_path / "tail.tsv"
        tail.write_text(TAIL)
        full = tmp_path / "full.tsv"
        full.write_text(HEAD + TAIL)
        checkpoint = tmp_path / "checkpoint.tsv"

        assert cli.main([str(head), "--output", str(checkpoint)]) == cli.EXIT_OK

        resumed = BitmexSimulator()
        replayer = Replayer(resumed)
        replayer.run(CaptureReader(checkpoint))
        replayer.run(CaptureReader(tail))

        assert resumed.take_state_snapshot() == replay(full).take_state_snapshot()

    def test_strict_flags_inconsistency(self, crossed_capture, tmp_path):
        out = tmp_path / "out.tsv"
        assert cli.main([str(crossed_capture), "--output", str(out)]) == cli.EXIT_OK
        assert cli.main([str(crossed_capture), "--output", str(out), "--strict"]) == cli.EXIT_INCONSISTENT

        sim = replay(crossed_capture)
        assert sim.diagnostics.crossed_purges == 1
        assert sim.diagnostics.unknown_updates == 1

    def test_filtered_state_snapshot_fails(self, clean_capture, tmp_path):
        out = tmp_path / "out.tsv"
        code = cli.main([str(clean_capture), "--filter", "orderBookL2", "--output", str(out)])

        assert code == cli.EXIT_FATAL
        assert not out.exists()

    def test_filtered_wire_snapshot(self, clean_capture, tmp_path):
        out = tmp_path / "out.tsv"
        code = cli.main([
            str(clean_capture), "--filter", "orderBookL2", "--snapshot", "wire", "--output", str(out),
        ])

        assert code == cli.EXIT_OK
        assert [r.channel for r in CaptureReader(out)] == ["orderBookL2", "orderBookL2"]

    def test_malformed_capture(self, tmp_path):
        path = tmp_path / "bad.tsv"
        path.write_text(HEAD + "msg\t2000\torderBookL2\t{broken\n")
        assert cli.main([str(path), "--snapshot", "none"]) == cli.EXIT_FATAL

    def test_missing_capture(self, tmp_path):
        assert cli.main([str(tmp_path / "nope.tsv")]) == cli.EXIT_FATAL
