"""
Periodic sample emission while the board is streaming.
"""

from __future__ import annotations
import logging
import threading
from typing import Callable

import numpy as np

from ..utils.config import EmulatorOptions
from .constants import MIN_TICK_MS, SAMPLE_NUMBER_MODULUS
from .packet import encode_sample
from .synth import synthesize_sample

log = logging.getLogger(__name__)


def tick_interval(sample_rate: int) -> float:
    """Seconds between packets, never faster than one per 2 ms."""
    return max(MIN_TICK_MS, 1000.0 / sample_rate) / 1000.0


class StreamScheduler:
    """
    Owns the single repeating timer.

    Ticks run under the emulator lock and carry a generation number, so a
    tick that races with stop() (or with a stop/start pair) is dropped
    instead of emitting a duplicate packet.
    """

    def __init__(
        self,
        state,
        options: EmulatorOptions,
        scheduler,
        emit: Callable[[bytes], None],
        lock: threading.RLock,
        rng: np.random.Generator,
    ) -> None:
        self._state = state
        self._options = options
        self._scheduler = scheduler
        self._emit = emit
        self._lock = lock
        self._rng = rng
        self._handle = None
        self._generation = 0
        self._index = 0   # unwrapped, drives waveform phase

    @property
    def running(self) -> bool:
        return self._handle is not None

    @property
    def interval(self) -> float:
        return tick_interval(self._state.sample_rate)

    def start(self) -> None:
        with self._lock:
            if self._handle is not None:
                return
            self._generation += 1
            generation = self._generation
            self._handle = self._scheduler.call_every(
                self.interval,
                lambda: self._tick(generation),
                on_error=lambda ex: self._abandon(generation),
            )
            log.debug("Stream started at %.1f ms/packet", self.interval * 1000)

    def stop(self) -> None:
        with self._lock:
            if self._handle is None:
                return
            self._handle.cancel()
            self._handle = None
            log.debug("Stream stopped at sample %d", self._state.sample_number)

    def _abandon(self, generation: int) -> None:
        """The timer died on an error: forget it so Stream-Start can rearm."""
        with self._lock:
            if generation != self._generation or self._handle is None:
                return
            self._handle = None
            self._state.streaming = False
            log.error("Stream halted at sample %d", self._state.sample_number)

    def _tick(self, generation: int) -> None:
        with self._lock:
            if self._handle is None or generation != self._generation:
                return
            record = synthesize_sample(self._index, self._options, self._rng)
            packet = encode_sample(record, self._state.sample_number)
            self._emit(packet)
            self._state.sample_number = (
                self._state.sample_number + 1
            ) % SAMPLE_NUMBER_MODULUS
            self._index += 1
