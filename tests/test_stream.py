import time

import numpy as np
import pytest

from cyton_emulator.devices import stream as stream_module
from cyton_emulator.devices.emulator import CytonEmulator
from cyton_emulator.devices.stream import tick_interval


@pytest.mark.parametrize(
    "rate, expected", [(250, 0.004), (125, 0.008), (1000, 0.002), (16000, 0.002)]
)
def test_tick_interval_has_2ms_floor(rate, expected):
    assert tick_interval(rate) == pytest.approx(expected)


@pytest.mark.parametrize("rate", [125, 250])
def test_packet_cadence_and_numbering(make_board, scheduler, rate):
    board = make_board(sample_rate=rate)
    stamps = []
    board.on("data", lambda _: stamps.append(scheduler.now))
    board.write(b"b")
    start = scheduler.now
    scheduler.advance(20.5 / rate)

    assert len(board.received) == 20
    assert stamps[0] - start == pytest.approx(1.0 / rate)
    assert np.diff(stamps) == pytest.approx(np.full(19, 1.0 / rate))
    assert [p[1] for p in board.received] == list(range(20))


def test_daisy_packets_carry_sixteen_channels(make_board, scheduler):
    board = make_board(daisy=True)
    board.write(b"b")
    scheduler.advance(0.02)
    assert len(board.received) == 2     # 125 Hz by default on daisy
    assert all(len(p) == 57 for p in board.received)


def test_start_twice_keeps_one_timer(make_board, scheduler):
    board = make_board()
    board.write(b"b")
    board.write(b"b")
    assert scheduler.active == 1
    scheduler.advance(0.0402)
    assert len(board.received) == 10


def test_stop_then_start_never_duplicates(make_board, scheduler):
    board = make_board()
    board.write(b"b")
    scheduler.advance(0.0102)
    board.write(b"s")
    board.write(b"b")
    scheduler.advance(0.0102)
    numbers = [p[1] for p in board.received]
    assert numbers == list(range(len(numbers)))
    assert scheduler.active == 1


def test_stop_is_immediate_and_idempotent(make_board, scheduler):
    board = make_board()
    board.write(b"s")
    board.write(b"b")
    scheduler.advance(0.0102)
    board.write(b"s")
    board.write(b"s")
    count = len(board.received)
    scheduler.advance(0.5)
    assert len(board.received) == count
    assert not board.state.streaming
    # not reset on stop
    assert board.state.sample_number == count


def test_sample_number_wraps(make_board, scheduler):
    board = make_board()
    board.state.sample_number = 254
    board.write(b"b")
    scheduler.advance(0.0122)
    assert [p[1] for p in board.received] == [254, 255, 0]
    assert board.state.sample_number == 1


def test_sample_number_survives_sd_and_sync(make_board, scheduler):
    board = make_board()
    board.write(b"b")
    scheduler.advance(0.0082)
    board.write(b"G")
    board.write(b"<")
    board.write(b"j")
    scheduler.advance(0.0082)
    frames = [p for p in board.received if len(p) == 33]
    assert [p[1] for p in frames] == [0, 1, 2, 3]


def test_thread_scheduler_streams_in_real_time():
    board = CytonEmulator(options={"seed": 7})
    received = []
    board.on("data", received.append)
    deadline = time.monotonic() + 2.0
    while not board.is_connected() and time.monotonic() < deadline:
        time.sleep(0.01)
    assert board.is_connected()

    board.write(b"b")
    time.sleep(0.3)
    board.write(b"s")
    count = len(received)
    time.sleep(0.05)
    board.close()

    assert count > 10
    assert len(received) == count
    assert [p[1] for p in received] == list(range(count))


def test_cadence_follows_device_state_rate(make_board, scheduler):
    board = make_board()
    board.state.sample_rate = 500
    assert board.stream.interval == pytest.approx(0.002)
    board.write(b"b")
    scheduler.advance(0.0101)
    assert len(board.received) == 5


def _raise_on_third(received):
    def listener(packet):
        received.append(packet)
        if len(received) == 3:
            raise RuntimeError("listener blew up")

    return listener


def test_failing_listener_does_not_stop_stream(make_board, scheduler):
    board = make_board()
    seen = []
    board.on("data", _raise_on_third(seen))
    board.write(b"b")
    scheduler.advance(0.0402)
    assert len(seen) == 10
    assert [p[1] for p in board.received] == list(range(10))
    assert board.state.streaming and board.stream.running


def test_failed_tick_lets_stream_restart(make_board, scheduler, monkeypatch):
    board = make_board()
    board.write(b"b")
    scheduler.advance(0.0082)

    def broken(*args):
        raise RuntimeError("synth failed")

    monkeypatch.setattr(stream_module, "synthesize_sample", broken)
    scheduler.advance(0.004)
    assert not board.state.streaming
    assert not board.stream.running
    assert scheduler.active == 0

    monkeypatch.undo()
    board.write(b"b")
    scheduler.advance(0.0082)
    assert [p[1] for p in board.received] == [0, 1, 2, 3]
    assert board.state.streaming and scheduler.active == 1


def test_failing_listener_with_thread_scheduler():
    board = CytonEmulator(options={"seed": 3})
    seen = []
    board.on("data", _raise_on_third(seen))
    deadline = time.monotonic() + 2.0
    while not board.is_connected() and time.monotonic() < deadline:
        time.sleep(0.01)
    assert board.is_connected()

    board.write(b"b")
    time.sleep(0.2)
    count = len(seen)
    board.write(b"b")
    time.sleep(0.1)
    board.close()

    assert count > 3
    assert len(seen) > count
    assert [p[1] for p in seen] == list(range(len(seen)))
