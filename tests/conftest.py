import heapq
import itertools

import numpy as np
import pytest

from cyton_emulator.devices.emulator import CytonEmulator
from cyton_emulator.devices.scheduler import TaskHandle


class FakeClock:
    """Millisecond clock driven by ManualScheduler."""

    def __init__(self, now_ms: float = 0.0):
        self.now_ms = now_ms

    def __call__(self) -> float:
        return self.now_ms


class ManualScheduler:
    """Virtual-time scheduler: nothing runs until advance() is called."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self._now = clock.now_ms / 1000.0
        self._queue = []
        self._seq = itertools.count()

    @property
    def now(self) -> float:
        return self._now

    def call_later(self, delay, fn):
        return self._push(self.now + delay, None, fn)

    def call_every(self, interval, fn, on_error=None):
        return self._push(self.now + interval, interval, fn, on_error)

    def _push(self, due, interval, fn, on_error=None):
        handle = TaskHandle()
        heapq.heappush(
            self._queue, (due, next(self._seq), interval, handle, fn, on_error)
        )
        return handle

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, interval, handle, fn, on_error = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._set_time(due)
            if interval is None:
                fn()
                continue
            # same contract as ThreadScheduler: a failing repeat is cancelled
            try:
                fn()
            except Exception as ex:
                handle.cancel()
                if on_error is not None:
                    on_error(ex)
                continue
            if not handle.cancelled:
                heapq.heappush(
                    self._queue,
                    (due + interval, next(self._seq), interval, handle, fn, on_error),
                )
        self._set_time(target)

    def _set_time(self, seconds: float) -> None:
        self._now = seconds
        self.clock.now_ms = seconds * 1000.0

    @property
    def active(self) -> int:
        return sum(1 for entry in self._queue if not entry[3].cancelled)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture
def make_board(clock, scheduler):
    """Build an emulator, open it, and collect its data events in .received."""

    def _make(port_name=None, open_port=True, **options):
        board = CytonEmulator(
            port_name,
            options,
            scheduler=scheduler,
            clock=clock,
            rng=np.random.default_rng(1234),
        )
        board.received = []
        board.on("data", board.received.append)
        if open_port:
            scheduler.advance(0.2)
        return board

    return _make
