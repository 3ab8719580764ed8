"""Command, action and send-message identifiers for the pump protocol.

``CommandType`` belongs to the outer Contour Next Link framing and is only
carried through by this package. ``CommandAction`` is the header of a
command envelope. ``SendMessageType`` selects the opcode inside an
encrypted send-message envelope.
"""

from __future__ import annotations

from enum import Enum, IntEnum


class CommandType(IntEnum):
    """Outer Contour Next Link message categories."""

    NO_TYPE = 0x00
    OPEN_CONNECTION = 0x10
    CLOSE_CONNECTION = 0x11
    SEND_MESSAGE = 0x12
    READ_INFO = 0x14
    REQUEST_LINK_KEY = 0x16
    SEND_LINK_KEY = 0x17
    RECEIVE_MESSAGE = 0x80
    SEND_MESSAGE_RESPONSE = 0x81
    REQUEST_LINK_KEY_RESPONSE = 0x86


class CommandAction(IntEnum):
    """Command envelope actions."""

    NO_TYPE = 0x00
    CHANNEL_NEGOTIATE = 0x03
    PUMP_REQUEST = 0x05
    PUMP_RESPONSE = 0x55

    @property
    def header(self) -> bytes:
        """Wire serialization of the action (one byte)."""
        return bytes([self.value])


class SendMessageType(Enum):
    """Send-message opcodes.

    Several members share a numeric code (the EHSM session begin and end
    messages, for instance), so the code is kept in ``code`` rather than
    being the enum value; otherwise the members would collapse into aliases.
    """

    NO_TYPE = ("no_type", 0x0000)
    BEGIN_EHSM_SESSION = ("begin_ehsm_session", 0x0412)
    TIME_REQUEST = ("time_request", 0x0403)
    READ_PUMP_STATUS_REQUEST = ("read_pump_status_request", 0x0112)
    READ_BASAL_PATTERN_REQUEST = ("read_basal_pattern_request", 0x0112)
    END_EHSM_SESSION = ("end_ehsm_session", 0x0412)

    def __init__(self, label: str, code: int) -> None:
        self.label = label
        self.code = code

    @classmethod
    def from_label(cls, label: str) -> SendMessageType:
        """Look up a member by its label or name, case-insensitively."""
        wanted = label.strip().lower()
        for member in cls:
            if wanted in (member.label, member.name.lower()):
                return member
        raise ValueError(
            f"Unknown send message type '{label}'. "
            f"Valid: {[m.label for m in cls]}"
        )
