"""Per-connection pump session state."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

MAX_PUMP_MAC = 0xFFFFFFFFFFFFFFFF
SEQUENCE_COUNTER_MASK = 0xFF


@dataclass
class PumpSession:
    """Identity, key material and sequence counter for one pump connection.

    Builders only read the session. The counter is advanced by
    :func:`~cnl24_mcp.protocol.commands.send_envelope` once an envelope has
    been handed to the transport. Hold ``lock`` around any build-and-send so
    two requests on the same session never embed the same counter.
    """

    pump_mac: int
    key: bytes
    iv: bytes
    sequence_counter: int = 1
    lock: threading.RLock = field(
        default_factory=threading.RLock, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if not 0 <= self.pump_mac <= MAX_PUMP_MAC:
            raise ValueError(f"Pump MAC must fit in 64 bits, got {self.pump_mac:#x}")
        if not 0 <= self.sequence_counter <= SEQUENCE_COUNTER_MASK:
            raise ValueError(
                f"Sequence counter must be 0-255, got {self.sequence_counter}"
            )
        if not isinstance(self.key, (bytes, bytearray)) or not isinstance(
            self.iv, (bytes, bytearray)
        ):
            raise ValueError("Session key and IV must be bytes")
        self.key = bytes(self.key)
        self.iv = bytes(self.iv)

    def advance_sequence_counter(self) -> int:
        """Increment the counter, wrapping from 255 to 0, and return it."""
        with self.lock:
            self.sequence_counter = (self.sequence_counter + 1) & SEQUENCE_COUNTER_MASK
            logger.debug("Sequence counter advanced to %d", self.sequence_counter)
            return self.sequence_counter

    def to_dict(self) -> dict:
        return {
            "pump_mac": f"{self.pump_mac:016x}",
            "sequence_counter": self.sequence_counter,
        }
