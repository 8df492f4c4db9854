"""
Command handling for the emulated board.

One command per write.  The first byte selects the handler; radio commands
carry a sub-command (and optional payload) after the radio key.
Unknown or truncated commands are ignored without a response.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List

import numpy as np

from ..utils.config import EmulatorOptions
from .base import SyncError
from .clock_sync import ClockSyncEngine
from .constants import (
    CMD_SOFT_RESET,
    CMD_STREAM_START,
    CMD_STREAM_STOP,
    CMD_SYNC_CLOCK_SERVER_DATA,
    CMD_SYNC_TIME_SET,
    FIRMWARE_V1,
    FIRMWARE_V2,
    RADIO_CHANNEL_GET,
    RADIO_CHANNEL_SET,
    RADIO_KEY,
    RADIO_POLL_TIME_SET,
    SAMPLE_RATE_250,
    SD_LOG_START_COMMANDS,
    SD_LOG_STOP,
    SYNC_SENT_DELAY,
    SYNC_TIME_SENT,
    TXT_ACCEL_ID,
    TXT_BANNER,
    TXT_CHANNEL_GET_FAILURE,
    TXT_CHANNEL_SUCCESS,
    TXT_DAISY_ID,
    TXT_FIRMWARE_V2,
    TXT_NO_BOARD_COMMS,
    TXT_POLL_TIME_SUCCESS,
    TXT_SD_NO_OPEN_FILE,
    TXT_SD_WIRING,
    TXT_SYNCED,
)
from .packet import frame_response
from .stream import StreamScheduler

log = logging.getLogger(__name__)

Responses = List[bytes]


@dataclass
class DeviceState:
    connected: bool = False
    streaming: bool = False
    sd_log_active: bool = False
    sd_log_start_time: float = 0.0
    channel_number: int = 1
    sample_number: int = 0
    firmware_version: str = FIRMWARE_V1
    daisy: bool = False
    board_failure: bool = False
    sample_rate: int = SAMPLE_RATE_250

    @classmethod
    def from_options(cls, options: EmulatorOptions) -> "DeviceState":
        return cls(
            firmware_version=options.firmware_version,
            daisy=options.daisy,
            board_failure=options.board_failure,
            sample_rate=options.sample_rate,
        )


class CommandDispatcher:
    def __init__(
        self,
        state: DeviceState,
        stream: StreamScheduler,
        sync: ClockSyncEngine,
        scheduler,
        clock: Callable[[], float],
        emit: Callable[[bytes], None],
        rng: np.random.Generator,
    ) -> None:
        self.state = state
        self.stream = stream
        self.sync = sync
        self._scheduler = scheduler
        self._clock = clock
        self._emit = emit
        self._rng = rng

        self._handlers: Dict[int, Callable[[bytes], Responses]] = {
            RADIO_KEY: self._radio,
            CMD_STREAM_START: self._stream_start,
            CMD_STREAM_STOP: self._stream_stop,
            CMD_SOFT_RESET: self._soft_reset,
            SD_LOG_STOP: self._sd_log_stop,
            CMD_SYNC_TIME_SET: self._sync_time_set,
            CMD_SYNC_CLOCK_SERVER_DATA: self._sync_clock_server_data,
        }
        for cmd in SD_LOG_START_COMMANDS:
            self._handlers[cmd] = self._sd_log_start

        self._radio_handlers: Dict[int, Callable[[bytes], Responses]] = {
            RADIO_CHANNEL_GET: self._channel_get,
            RADIO_CHANNEL_SET: self._channel_set,
            RADIO_POLL_TIME_SET: self._poll_time_set,
        }

    def dispatch(self, data: bytes) -> Responses:
        """Apply one command and return the responses it produces."""
        if not data:
            return []
        handler = self._handlers.get(data[0])
        if handler is None:
            log.debug("Ignoring unknown command 0x%02X", data[0])
            return []
        return handler(data)

    # -------- Radio (V2 firmware) -------- #

    def _radio(self, data: bytes) -> Responses:
        if self.state.firmware_version != FIRMWARE_V2 or len(data) < 2:
            return []
        handler = self._radio_handlers.get(data[1])
        if handler is None:
            return []
        return handler(data[2:])

    def _channel_get(self, payload: bytes) -> Responses:
        channel = bytes([self.state.channel_number])
        if self.state.board_failure:
            return [frame_response(TXT_CHANNEL_GET_FAILURE + channel)]
        return [frame_response(TXT_CHANNEL_SUCCESS + channel)]

    def _channel_set(self, payload: bytes) -> Responses:
        if not payload:
            return []
        if self.state.board_failure:
            return [frame_response(TXT_NO_BOARD_COMMS)]
        self.state.channel_number = payload[0]
        return [frame_response(TXT_CHANNEL_SUCCESS + bytes([payload[0]]))]

    def _poll_time_set(self, payload: bytes) -> Responses:
        if self.state.board_failure:
            return [frame_response(TXT_NO_BOARD_COMMS)]
        return [frame_response(TXT_POLL_TIME_SUCCESS)]

    # -------- Streaming -------- #

    def _stream_start(self, data: bytes) -> Responses:
        self.stream.start()
        self.state.streaming = True
        return []

    def _stream_stop(self, data: bytes) -> Responses:
        self.stream.stop()
        self.state.streaming = False
        return []

    def _soft_reset(self, data: bytes) -> Responses:
        self.stream.stop()
        self.state.streaming = False
        text = TXT_BANNER
        if self.state.daisy:
            text += TXT_DAISY_ID
        text += TXT_ACCEL_ID
        if self.state.firmware_version == FIRMWARE_V2:
            text += TXT_FIRMWARE_V2
        return [frame_response(text)]

    # -------- SD card -------- #

    def _sd_log_start(self, data: bytes) -> Responses:
        self.state.sd_log_active = True
        self.state.sd_log_start_time = self._clock()
        if self.state.streaming:
            return []
        return [frame_response(TXT_SD_WIRING)]

    def _sd_log_stop(self, data: bytes) -> Responses:
        was_active = self.state.sd_log_active
        self.state.sd_log_active = False
        if self.state.streaming:
            return []
        if not was_active:
            return [frame_response(TXT_SD_NO_OPEN_FILE)]
        elapsed = self._clock() - self.state.sd_log_start_time
        text = (
            f"Total Elapsed Time: {elapsed:.3f} ms\n"
            f"Max write time: {self._rng.random() * 500:.3f} us\n"
            f"Min write time: {self._rng.random() * 200:.3f} us\n"
            f"Overruns: 0\n"
        )
        return [frame_response(text)]

    # -------- Clock sync -------- #

    def _sync_time_set(self, data: bytes) -> Responses:
        self.sync.begin(self._clock())
        self._scheduler.call_later(SYNC_SENT_DELAY, lambda: self._emit(SYNC_TIME_SENT))
        return []

    def _sync_clock_server_data(self, data: bytes) -> Responses:
        t3 = self._clock()
        try:
            self.sync.complete(data[1:], t3)
        except SyncError as ex:
            log.warning("Clock sync ignored: %s", ex)
            return []
        return [frame_response(TXT_SYNCED)]
