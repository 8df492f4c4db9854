"""
Capture side: listens to a board, decodes what it sends, records samples.
"""

from __future__ import annotations
import threading
import time
from typing import Callable, Dict, Any, Optional, Union
from ..devices.base import BaseDevice, PacketError
from ..devices.constants import (
    EOT,
    NUM_CHANNELS_DEFAULT,
    PACKET_START,
    PACKET_STOP,
    SYNC_TIME_SENT,
)
from ..devices.packet import decode_packet, packet_size
from ..utils.logger import CsvLogger

_CALLBACK = Callable[[Dict[str, Any]], None]


class CaptureModel:
    """
    Owns the board subscription and the CSV logger.

    Updates passed to subscribers are dicts with one of the shapes
        {"sample_number", "channels", "aux"}   channels in µV, aux in g
        {"response": text}                      a $$$-terminated reply
        {"sync_sent": True}
        {"event": "open" | "close"}
        {"error": message}
    """

    def __init__(
        self,
        device: BaseDevice,
        n_channels: int = NUM_CHANNELS_DEFAULT,
        log_prefix: str = "sim",
        directory: str = "logs",
    ) -> None:
        self.device = device
        self.n_channels = n_channels
        self._frame_size = packet_size(n_channels)
        self._callbacks: list[_CALLBACK] = []
        self._text = bytearray()
        self._opened = threading.Event()
        self._started = False
        self.logger = CsvLogger(prefix=log_prefix, n_channels=n_channels, directory=directory)

    # -------- Public API -------- #

    def start(self) -> None:
        if self._started:
            return
        self.device.on("open", self._on_open)
        self.device.on("data", self._on_data)
        self.device.on("close", self._on_close)
        self.device.on("error", self._on_error)
        self._started = True
        if self.device.is_connected():
            self._opened.set()

    def stop(self) -> None:
        self.device.close()
        if self._started:
            for event, cb in (
                ("open", self._on_open),
                ("data", self._on_data),
                ("close", self._on_close),
                ("error", self._on_error),
            ):
                self.device.off(event, cb)
            self._started = False

    def wait_open(self, timeout: Optional[float] = None) -> bool:
        return self._opened.wait(timeout)

    def send(self, command: Union[bytes, str]) -> Optional[str]:
        return self.device.write(command)

    def subscribe(self, cb: _CALLBACK) -> None:
        """Register a callback executed on every decoded update."""
        self._callbacks.append(cb)

    # -------- Internal -------- #

    def _publish(self, update: Dict[str, Any]) -> None:
        for cb in self._callbacks:
            cb(update)

    def _on_open(self) -> None:
        self._opened.set()
        self._publish({"event": "open"})

    def _on_close(self) -> None:
        self._opened.clear()
        self._publish({"event": "close"})

    def _on_error(self, ex: Exception) -> None:
        self._publish({"error": f"{type(ex).__name__}: {ex}"})

    def _on_data(self, chunk: bytes) -> None:
        if not self._text and self._is_frame(chunk):
            self._on_sample(chunk)
            return
        if not self._text and chunk == SYNC_TIME_SENT:
            self._publish({"sync_sent": True})
            return

        self._text.extend(chunk)
        while EOT in self._text:
            end = self._text.index(EOT)
            text = bytes(self._text[:end]).decode("latin-1")
            del self._text[: end + len(EOT)]
            self._publish({"response": text})

    def _is_frame(self, chunk: bytes) -> bool:
        return (
            len(chunk) == self._frame_size
            and chunk[0] == PACKET_START
            and chunk[-1] == PACKET_STOP
        )

    def _on_sample(self, chunk: bytes) -> None:
        try:
            sample = decode_packet(chunk)
        except PacketError as ex:
            self._publish({"error": f"{type(ex).__name__}: {ex}"})
            return
        channels_uv = [v * 1e6 for v in sample["channels"]]
        update = {
            "sample_number": sample["sample_number"],
            "channels": channels_uv,
            "aux": sample["aux"],
        }
        self._publish(update)
        # Persist to disk
        self.logger.append(
            [time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime()), sample["sample_number"]]
            + [f"{v:.3f}" for v in channels_uv]
            + [f"{a:.4f}" for a in sample["aux"]]
        )
