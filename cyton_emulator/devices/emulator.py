"""
Software stand-in for an OpenBCI Cyton board on a serial port.

Behaves like the port the client library would open: it reports "open"
after a short delay, answers command bytes with framed text, and streams
sample packets on a timer once told to.
"""

from __future__ import annotations
import logging
import threading
import time
from typing import Any, Callable, Mapping, Optional, Union

import numpy as np
import serial

from ..utils.config import EmulatorOptions
from ..utils.logger import configure_logging
from .base import BaseDevice
from .clock_sync import ClockSyncEngine
from .constants import ACK_SUCCESS, OPEN_DELAY, SIMULATOR_PORT_NAME
from .dispatcher import CommandDispatcher, DeviceState
from .scheduler import ThreadScheduler
from .stream import StreamScheduler

log = logging.getLogger(__name__)


def _perf_ms() -> float:
    return time.perf_counter() * 1000.0


class CytonEmulator(BaseDevice):
    """
    Owns device state and wires the dispatcher, stream and clock sync
    together.  All state changes happen under one lock.
    """

    def __init__(
        self,
        port_name: Optional[str] = None,
        options: Union[EmulatorOptions, Mapping[str, Any], None] = None,
        *,
        scheduler=None,
        clock: Callable[[], float] = _perf_ms,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        super().__init__()
        if not isinstance(options, EmulatorOptions):
            options = EmulatorOptions.from_mapping(options)
        self.options = options
        self.port_name = port_name or SIMULATOR_PORT_NAME
        if options.verbose:
            configure_logging(verbose=True)

        self._lock = threading.RLock()
        self._scheduler = scheduler or ThreadScheduler()
        self._clock = clock
        self._rng = rng if rng is not None else np.random.default_rng(options.seed)
        self._closed = False

        self.state = DeviceState.from_options(options)
        self.sync = ClockSyncEngine(clock_origin=clock())
        self.stream = StreamScheduler(
            self.state, options, self._scheduler, self._emit_data, self._lock, self._rng
        )
        self.dispatcher = CommandDispatcher(
            self.state,
            self.stream,
            self.sync,
            self._scheduler,
            clock,
            self._emit_data,
            self._rng,
        )
        self._open_handle = self._scheduler.call_later(OPEN_DELAY, self._finish_open)

    # -------- Lifecycle -------- #

    def _finish_open(self) -> None:
        with self._lock:
            if self._closed:
                return
            log.debug("Port name: %s", self.port_name)
            if self.port_name != SIMULATOR_PORT_NAME or self.options.serial_port_failure:
                self._emit("error", serial.SerialException("Serialport not open."))
                return
            self.state.connected = True
            self._emit("open")

    def is_connected(self) -> bool:
        return self.state.connected

    def close(self) -> bool:
        with self._lock:
            self._closed = True
            self._open_handle.cancel()
            self.stream.stop()
            self.state.streaming = False
            was_connected = self.state.connected
            self.state.connected = False
            if was_connected:
                self._emit("close")
            return was_connected

    # -------- I/O -------- #

    def write(self, data: Union[bytes, bytearray, str]) -> Optional[str]:
        """
        Dispatch one command.  Returns the transport acknowledgment, or None
        when the port is not connected (nothing is dispatched).
        """
        if isinstance(data, str):
            data = data.encode("latin-1")
        with self._lock:
            if not self.state.connected:
                log.debug("Write refused, port not open: %r", bytes(data))
                return None
            for response in self.dispatcher.dispatch(bytes(data)):
                self._emit("data", response)
            return ACK_SUCCESS

    def flush(self) -> None:
        """Nothing is buffered on the emulator side."""

    def drain(self) -> None:
        """Writes complete synchronously, so there is never anything to wait on."""

    def _emit_data(self, payload: bytes) -> None:
        with self._lock:
            if self.state.connected:
                self._emit("data", payload)

    # -------- Convenience -------- #

    @property
    def clock_origin(self) -> float:
        return self.sync.clock_origin

    def board_time(self) -> float:
        """Milliseconds on the board's (sync-corrected) clock."""
        return self._clock() - self.sync.clock_origin


def open_emulator(
    port_name: str = SIMULATOR_PORT_NAME,
    *,
    scheduler=None,
    clock: Callable[[], float] = _perf_ms,
    rng: Optional[np.random.Generator] = None,
    **options: Any,
) -> CytonEmulator:
    """Create an emulator from keyword options (snake_case or camelCase)."""
    return CytonEmulator(
        port_name,
        EmulatorOptions.from_mapping(options),
        scheduler=scheduler,
        clock=clock,
        rng=rng,
    )
