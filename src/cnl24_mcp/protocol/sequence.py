"""Per-type tag bytes for send-message sub-messages.

The tag is a fixed protocol constant chosen by message type. It is not the
session's sequence counter, which lives on :class:`~cnl24_mcp.session.PumpSession`
and only advances after a successful transmission.
"""

from __future__ import annotations

from .types import SendMessageType

DEFAULT_TAG = 0x00

SEND_TAGS: dict[SendMessageType, int] = {
    SendMessageType.BEGIN_EHSM_SESSION: 0x80,
    SendMessageType.TIME_REQUEST: 0x02,
    SendMessageType.READ_PUMP_STATUS_REQUEST: 0x03,
}


def send_tag(send_type: SendMessageType) -> int:
    """Return the tag byte that opens the sub-message for ``send_type``."""
    return SEND_TAGS.get(send_type, DEFAULT_TAG)
