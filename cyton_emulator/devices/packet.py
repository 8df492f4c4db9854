"""
Cyton sample framing.

Frame layout (8 channels = 33 bytes, 16 channels = 57 bytes):
    0xA0 | sample no. | 3 bytes per channel | 3 x 2 bytes aux | 0xC0
Channel counts are signed 24-bit big-endian, aux counts signed 16-bit.
Sample frames end at the 0xC0 stop byte; only text responses get the "$$$"
terminator.
"""

from __future__ import annotations
import struct
from typing import Any, Dict, Union

import numpy as np

from .base import PacketError
from .constants import (
    EOT,
    NUM_AUX_CHANNELS,
    PACKET_START,
    PACKET_STOP,
    SCALE_G_PER_COUNT,
    SCALE_VOLTS_PER_COUNT,
)
from .synth import SampleRecord

_INT24_MIN, _INT24_MAX = -(2 ** 23), 2 ** 23 - 1
_INT16_MIN, _INT16_MAX = -(2 ** 15), 2 ** 15 - 1
_OVERHEAD = 3 + 2 * NUM_AUX_CHANNELS   # start, sample no., stop + aux


def packet_size(n_channels: int) -> int:
    return _OVERHEAD + 3 * n_channels


def int24_to_bytes(value: int) -> bytes:
    """Signed 24-bit integer to 3 big-endian bytes."""
    if value < 0:
        value += 1 << 24
    return value.to_bytes(3, byteorder="big")


def bytes_to_int24(raw: bytes) -> int:
    value = int.from_bytes(raw, byteorder="big")
    if value & 0x800000:
        value -= 1 << 24
    return value


def frame_response(text: Union[bytes, str]) -> bytes:
    """Append the end-of-transmission marker to a text response."""
    if isinstance(text, str):
        text = text.encode("ascii")
    return text + EOT


def encode_sample(record: SampleRecord, sample_number: int) -> bytes:
    counts = np.clip(
        np.rint(record.channel_data / SCALE_VOLTS_PER_COUNT), _INT24_MIN, _INT24_MAX
    ).astype(int)
    aux = np.clip(
        np.rint(record.aux_data / SCALE_G_PER_COUNT), _INT16_MIN, _INT16_MAX
    ).astype(int)

    packet = bytearray([PACKET_START, sample_number & 0xFF])
    for count in counts:
        packet.extend(int24_to_bytes(int(count)))
    packet.extend(struct.pack(">3h", *(int(a) for a in aux)))
    packet.append(PACKET_STOP)
    return bytes(packet)


def decode_packet(data: bytes) -> Dict[str, Any]:
    """
    Parse one frame back into volts / g.

    The channel count is inferred from the frame length.
    """
    n_channels, rem = divmod(len(data) - _OVERHEAD, 3)
    if rem or n_channels <= 0:
        raise PacketError(f"Bad frame length: {len(data)}")
    if data[0] != PACKET_START or data[-1] != PACKET_STOP:
        raise PacketError(f"Bad frame markers: 0x{data[0]:02X}..0x{data[-1]:02X}")

    body = data[2 : 2 + 3 * n_channels]
    channels = [
        bytes_to_int24(body[i : i + 3]) * SCALE_VOLTS_PER_COUNT
        for i in range(0, len(body), 3)
    ]
    aux_raw = data[2 + 3 * n_channels : -1]
    aux = [c * SCALE_G_PER_COUNT for c in struct.unpack(">3h", aux_raw)]
    return {"sample_number": data[1], "channels": channels, "aux": aux}
