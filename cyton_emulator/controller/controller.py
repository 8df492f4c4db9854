"""
Receives UI intents, instantiates Model & emulator, relays updates up.
"""

from __future__ import annotations
from queue import Queue
from typing import Dict, Any, Mapping, Optional, Union

from ..devices.emulator import CytonEmulator
from ..model.model import CaptureModel
from ..utils.config import EmulatorOptions

Update = Dict[str, Any]


class Controller:
    """
    The Controller is intentionally very thin; it marshals options
    from the UI into emulator/model objects and publishes a thread‑safe
    message queue back to the UI.
    """

    def __init__(self, log_dir: str = "logs") -> None:
        self._queue: "Queue[Update]" = Queue()
        self._model: Optional[CaptureModel] = None
        self._log_dir = log_dir

    # -------- Lifecycle -------- #

    def start_emulated(
        self,
        options: Union[EmulatorOptions, Mapping[str, Any], None] = None,
        port_name: Optional[str] = None,
        open_timeout: float = 2.0,
    ) -> bool:
        """
        Build an emulator, attach a capture model and wait for the port to
        open.  Returns False if it reported an error instead.
        """
        if self._model:
            self.stop()
        device = CytonEmulator(port_name, options)
        self._model = CaptureModel(
            device,
            n_channels=device.options.num_channels,
            log_prefix="sim",
            directory=self._log_dir,
        )
        self._model.subscribe(self._queue.put)
        self._model.start()
        return self._model.wait_open(open_timeout)

    def stop(self) -> None:
        if self._model:
            self._model.stop()
            self._model = None

    def send(self, command: Union[bytes, str]) -> Optional[str]:
        """Forward one command; None when nothing is connected."""
        if not self._model:
            return None
        return self._model.send(command)

    # -------- Public getters -------- #

    @property
    def queue(self) -> "Queue[Update]":
        return self._queue

    @property
    def running(self) -> bool:
        return self._model is not None and self._model.device.is_connected()

    @property
    def log_path(self):
        return self._model.logger.file_path if self._model else None
