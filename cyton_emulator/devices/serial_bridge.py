"""
Expose a board adapter on a real or virtual serial port.

Point one end of a null-modem pair (e.g. two socat ptys) at the bridge and
the client under test at the other end.

Usage:
    python -m cyton_emulator.devices.serial_bridge --port /dev/pts/4
    python -m cyton_emulator.devices.serial_bridge --port COM7 --daisy --firmware v2
"""

from __future__ import annotations
import argparse
import logging
import threading
import time
from typing import Callable, Iterator, Optional

import serial

from ..utils.logger import configure_logging
from .base import BaseDevice
from .constants import CMD_SYNC_CLOCK_SERVER_DATA, RADIO_KEY
from .emulator import open_emulator

log = logging.getLogger(__name__)

_DEFAULT_BAUD = 115200
_READ_TIMEOUT = 0.05   # seconds; bounds how long stop() waits on the reader


def split_commands(chunk: bytes) -> Iterator[bytes]:
    """
    Cut a burst of serial input into single commands.

    Most commands are one byte.  Radio and sync-server commands carry a
    payload, so they swallow the rest of the burst.
    """
    for i, byte in enumerate(chunk):
        if byte in (RADIO_KEY, CMD_SYNC_CLOCK_SERVER_DATA):
            yield chunk[i:]
            return
        yield chunk[i : i + 1]


class SerialBridge:
    """
    A very thin pySerial relay: bytes read from the port are written to the
    board, every board "data" event is written back to the port.
    """

    def __init__(
        self,
        device: BaseDevice,
        port: str,
        baudrate: int = _DEFAULT_BAUD,
        timeout: float = _READ_TIMEOUT,
        serial_factory: Callable[..., serial.Serial] = serial.Serial,
    ) -> None:
        self.device = device
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self._serial_factory = serial_factory
        self._ser: Optional[serial.Serial] = None
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ---------- Public API ---------- #

    def connect(self) -> None:
        self._ser = self._serial_factory(
            port=self.port,
            baudrate=self.baudrate,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            timeout=self.timeout,
        )
        self.device.on("data", self._forward)
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="SerialBridge")
        self._thread.start()
        log.info("Bridging board to %s at %d baud", self.port, self.baudrate)

    def disconnect(self) -> None:
        self._stop.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None
        self.device.off("data", self._forward)
        if self._ser:
            if self._ser.is_open:
                try:
                    self._ser.close()
                except (OSError, serial.SerialException):
                    # Port vanished underneath us (pty closed / USB unplug) – ignore.
                    pass
            self._ser = None

    def is_connected(self) -> bool:
        return (
            self._ser is not None
            and self._ser.is_open
            and self._thread is not None
            and self._thread.is_alive()
        )

    # ---------- Private helpers ---------- #

    def _forward(self, payload: bytes) -> None:
        ser = self._ser
        if ser is None:
            return
        with self._lock:
            ser.write(payload)
            ser.flush()

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                chunk = self._ser.read(self._ser.in_waiting or 1)
            except (OSError, serial.SerialException) as ex:
                log.error("Serial read failed on %s: %s", self.port, ex)
                break
            if not chunk:
                continue
            for command in split_commands(chunk):
                log.debug("RX %r", command)
                if self.device.write(command) is None:
                    log.warning("Board not open; dropped %r", command)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Serve the Cyton emulator on a serial port")
    parser.add_argument("--port", required=True, help="Serial device to serve on")
    parser.add_argument("--baud", default=_DEFAULT_BAUD, type=int, help="Baud rate")
    parser.add_argument("--daisy", action="store_true", help="16 channels")
    parser.add_argument("--firmware", default="v1", choices=["v1", "v2"])
    parser.add_argument("--line-noise", default="60Hz", choices=["60Hz", "50Hz", "None"])
    parser.add_argument("--sample-rate", default=None, type=int)
    parser.add_argument("--board-failure", action="store_true")
    parser.add_argument("--no-alpha", action="store_true")
    parser.add_argument("--seed", default=None, type=int)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    board = open_emulator(
        daisy=args.daisy,
        firmware_version=args.firmware,
        line_noise=args.line_noise,
        sample_rate=args.sample_rate,
        board_failure=args.board_failure,
        alpha=not args.no_alpha,
        seed=args.seed,
        verbose=args.verbose,
    )
    opened = threading.Event()
    board.on("open", opened.set)
    if not opened.wait(2.0):
        raise SystemExit("Emulator did not open")

    bridge = SerialBridge(board, args.port, baudrate=args.baud)
    bridge.connect()
    try:
        while bridge.is_connected():
            time.sleep(0.5)
    except KeyboardInterrupt:
        log.info("Interrupted")
    finally:
        bridge.disconnect()
        board.close()


if __name__ == "__main__":
    main()
