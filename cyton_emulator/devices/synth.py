"""
Synthetic EEG-like sample generation.

Every channel is gaussian noise plus optional alpha rhythm, optional mains
interference and a linear drift.  Values are in volts; aux values are in g.
"""

from __future__ import annotations
import math
from dataclasses import dataclass

import numpy as np

from ..utils.config import EmulatorOptions

UVOLTS = 1_000_000.0
ALPHA_HZ = 10.0
ALPHA_AMPLITUDE_UV = 10.0
LINE_NOISE_AMPLITUDE_UV = 20.0
ACCEL_JITTER_G = 0.01
_REST_ORIENTATION_G = np.array([0.0, 0.0, 1.0])


@dataclass
class SampleRecord:
    sample_index: int
    channel_data: np.ndarray
    aux_data: np.ndarray


def synthesize_sample(
    index: int, options: EmulatorOptions, rng: np.random.Generator
) -> SampleRecord:
    """
    Build the record for unwrapped tick *index*.

    Only *rng* carries state, so a seeded generator gives a repeatable
    stream.
    """
    n = options.num_channels
    t = index / options.sample_rate
    ch = np.arange(n)

    data = rng.standard_normal(n) * math.sqrt(options.sample_rate / 2.0) / UVOLTS

    if options.alpha:
        # the daisy board repeats the lower board's pattern
        amplitude = ALPHA_AMPLITUDE_UV * (1.0 - 0.05 * (ch % 8)) / UVOLTS
        phase = (ch % 8) * math.pi / 8.0
        data += amplitude * np.sin(2.0 * math.pi * ALPHA_HZ * t + phase)

    mains_hz = options.line_noise_hz
    if mains_hz is not None:
        data += LINE_NOISE_AMPLITUDE_UV / UVOLTS * math.sin(2.0 * math.pi * mains_hz * t)

    if options.drift:
        data += options.drift * index / UVOLTS

    if options.accel:
        aux = _REST_ORIENTATION_G + rng.normal(0.0, ACCEL_JITTER_G, 3)
    else:
        aux = np.zeros(3)

    return SampleRecord(sample_index=index, channel_data=data, aux_data=aux)
