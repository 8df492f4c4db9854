"""
Four-timestamp clock synchronisation.

    t0  emulator send time (sync time set)
    t1  peer receive time      } carried in the server-data payload
    t2  peer send time         }
    t3  emulator receive time (sync clock server data)

The estimate splits the network time evenly and projects the peer's send
time forward; it is not the symmetric NTP offset formula.
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from .base import SyncError

log = logging.getLogger(__name__)

_NUMBER = re.compile(rb"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_SEPARATORS = b" ,;:\t\r\n"


@dataclass
class ClockSyncState:
    t0: float
    t1: Optional[float] = None
    t2: Optional[float] = None
    t3: Optional[float] = None


@dataclass(frozen=True)
class SyncResult:
    time_spent_on_network: float
    transfer_time: float
    true_time: float
    delta: float


def compute_offset(t0: float, t1: float, t2: float, t3: float) -> SyncResult:
    time_spent_on_network = t3 - t0 - (t2 - t1)
    transfer_time = time_spent_on_network / 2
    true_time = t2 + transfer_time
    return SyncResult(
        time_spent_on_network=time_spent_on_network,
        transfer_time=transfer_time,
        true_time=true_time,
        delta=true_time - t3,
    )


def _leading_float(raw: bytes) -> float:
    match = _NUMBER.match(raw.strip(_SEPARATORS))
    if not match:
        raise SyncError(f"No timestamp in {raw!r}")
    return float(match.group())


def parse_server_payload(payload: bytes) -> Tuple[float, float]:
    """Split *payload* at its midpoint and read one timestamp from each half."""
    half = len(payload) // 2
    return _leading_float(payload[:half]), _leading_float(payload[half:])


class ClockSyncEngine:
    """Holds the pending handshake and the running clock origin."""

    def __init__(self, clock_origin: float = 0.0) -> None:
        self.clock_origin = clock_origin
        self.state: Optional[ClockSyncState] = None

    @property
    def pending(self) -> bool:
        return self.state is not None

    def begin(self, t0: float) -> None:
        # a new sync time set restarts any unfinished handshake
        self.state = ClockSyncState(t0=t0)

    def complete(self, payload: bytes, t3: float) -> SyncResult:
        if self.state is None:
            raise SyncError("Server data received before sync time set")
        state, self.state = self.state, None

        state.t1, state.t2 = parse_server_payload(payload)
        state.t3 = t3
        result = compute_offset(state.t0, state.t1, state.t2, state.t3)
        self.clock_origin += result.delta
        log.debug(
            "ntp1: %s ntp2: %s delta: %s", state.t1, state.t2, result.delta
        )
        return result
