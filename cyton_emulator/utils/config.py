"""
Emulator options: parsing, defaulting and validation.
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from ..devices.base import OptionsError
from ..devices.constants import (
    FIRMWARE_V1,
    FIRMWARE_V2,
    LINE_NOISE_50HZ,
    LINE_NOISE_60HZ,
    LINE_NOISE_NONE,
    NUM_CHANNELS_DAISY,
    NUM_CHANNELS_DEFAULT,
    SAMPLE_RATE_125,
    SAMPLE_RATE_250,
)

# camelCase keys accepted for compatibility with the JS simulator options
_ALIASES = {
    "boardFailure": "board_failure",
    "firmwareVersion": "firmware_version",
    "lineNoise": "line_noise",
    "sampleRate": "sample_rate",
    "serialPortFailure": "serial_port_failure",
}

_LINE_NOISE_HZ = {LINE_NOISE_60HZ: 60.0, LINE_NOISE_50HZ: 50.0, LINE_NOISE_NONE: None}


@dataclass(frozen=True)
class EmulatorOptions:
    accel: bool = True
    alpha: bool = True
    board_failure: bool = False
    daisy: bool = False
    drift: float = 0.0          # µV added per tick
    firmware_version: str = FIRMWARE_V1
    line_noise: str = LINE_NOISE_60HZ
    sample_rate: Optional[int] = None
    serial_port_failure: bool = False
    verbose: bool = False
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.firmware_version not in (FIRMWARE_V1, FIRMWARE_V2):
            raise OptionsError(f"Unknown firmware version: {self.firmware_version!r}")
        if self.line_noise not in _LINE_NOISE_HZ:
            raise OptionsError(f"Unknown line noise setting: {self.line_noise!r}")
        if self.sample_rate is None:
            rate = SAMPLE_RATE_125 if self.daisy else SAMPLE_RATE_250
            object.__setattr__(self, "sample_rate", rate)
        elif isinstance(self.sample_rate, bool) or not isinstance(self.sample_rate, int):
            raise OptionsError(f"Sample rate must be an integer: {self.sample_rate!r}")
        elif self.sample_rate <= 0:
            raise OptionsError(f"Sample rate must be positive: {self.sample_rate}")
        try:
            object.__setattr__(self, "drift", float(self.drift))
        except (TypeError, ValueError) as ex:
            raise OptionsError(f"Drift must be numeric: {self.drift!r}") from ex

    # -------- Constructors -------- #

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]] = None) -> "EmulatorOptions":
        """
        Build options from a dict using either snake_case or the original
        camelCase keys. Missing keys take their defaults.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in (options or {}).items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise OptionsError(f"Unknown option: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)

    # -------- Derived values -------- #

    @property
    def num_channels(self) -> int:
        return NUM_CHANNELS_DAISY if self.daisy else NUM_CHANNELS_DEFAULT

    @property
    def line_noise_hz(self) -> Optional[float]:
        return _LINE_NOISE_HZ[self.line_noise]
