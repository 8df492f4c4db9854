import threading
import time

from cyton_emulator.devices.scheduler import ThreadScheduler


def test_call_later_runs_once():
    done = threading.Event()
    ThreadScheduler().call_later(0.01, done.set)
    assert done.wait(1.0)


def test_cancelled_call_later_never_runs():
    calls = []
    handle = ThreadScheduler().call_later(0.05, lambda: calls.append(1))
    handle.cancel()
    time.sleep(0.1)
    assert calls == []


def test_failing_repeat_is_cancelled_and_reported():
    errors = []
    reported = threading.Event()

    def tick():
        raise RuntimeError("tick")

    def on_error(ex):
        errors.append(ex)
        reported.set()

    handle = ThreadScheduler().call_every(0.01, tick, on_error=on_error)
    assert reported.wait(1.0)
    assert handle.cancelled
    time.sleep(0.05)
    assert len(errors) == 1
    assert isinstance(errors[0], RuntimeError)


def test_stalled_repeat_skips_missed_ticks():
    stamps = []

    def tick():
        stamps.append(time.monotonic())
        if len(stamps) == 1:
            time.sleep(0.1)   # five intervals

    handle = ThreadScheduler().call_every(0.02, tick)
    time.sleep(0.25)
    handle.cancel()

    gaps = [b - a for a, b in zip(stamps[1:], stamps[2:])]
    assert len(gaps) >= 2
    assert min(gaps) > 0.01
