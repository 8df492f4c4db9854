"""
Abstract base classes and errors for board adapters.
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

log = logging.getLogger(__name__)

EVENTS = ("open", "data", "close", "error")

Listener = Callable[..., None]


class DeviceError(Exception):
    """Raised when a board adapter is misused or sees malformed input."""


class OptionsError(DeviceError, ValueError):
    """Raised for unknown or invalid emulator options."""


class PacketError(DeviceError):
    """Raised when a sample frame cannot be decoded."""


class SyncError(DeviceError):
    """Raised when clock-sync timestamps cannot be parsed."""


class BaseDevice(ABC):
    """
    Common interface for emulated and bridged boards.

    Subclasses own the protocol; this class owns the observer list.
    Listeners are called synchronously, in registration order.  A listener
    that raises is logged and skipped; the rest still run.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {name: [] for name in EVENTS}

    @abstractmethod
    def write(self, data: bytes) -> Optional[str]:
        """Send one command; returns an acknowledgment or None if refused."""

    @abstractmethod
    def close(self) -> bool: ...

    @abstractmethod
    def is_connected(self) -> bool: ...

    # -------- Event surface -------- #

    def on(self, event: str, callback: Listener) -> None:
        if event not in self._listeners:
            raise DeviceError(f"Unknown event: {event!r}")
        self._listeners[event].append(callback)

    def off(self, event: str, callback: Listener) -> None:
        try:
            self._listeners[event].remove(callback)
        except (KeyError, ValueError):
            pass

    def _emit(self, event: str, *args: Any) -> None:
        for cb in list(self._listeners[event]):
            try:
                cb(*args)
            except Exception:
                log.exception("%s listener %r failed", event, cb)

    # Context‑manager sugar
    def __enter__(self) -> "BaseDevice":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
