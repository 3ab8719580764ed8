"""Envelope builders for pump requests.

Command envelope (little-endian)::

    +---------------+-------------+------------------+-----------+
    | CommandAction | Env. length |     Payload      |    CRC    |
    |    1 byte     |   1 byte    |  variable length | LE 2 bytes|
    +---------------+-------------+------------------+-----------+

- Env. length: header size + payload length (everything before the CRC)
- CRC: CCITT over every byte before it

Send-message envelope, used as the payload of a ``PUMP_REQUEST``
command envelope (outer header little-endian)::

    +-------------+---------+--------+--------------+---------------------+
    | LE pump MAC | Counter | 0x10   | Enc. length  | Encrypted sub-msg   |
    |   8 bytes   | 1 byte  | 1 byte |    1 byte    |  variable length    |
    +-------------+---------+--------+--------------+---------------------+

Sub-message before encryption (big-endian)::

    +--------+-----------+------------------+-----------+
    |  Tag   | BE opcode |     Payload      |  BE CRC   |
    | 1 byte |  2 bytes  |  variable length |  2 bytes  |
    +--------+-----------+------------------+-----------+
"""

from __future__ import annotations

import logging
import struct

from ..session import PumpSession
from ..utils.crc import CRC_INITIAL, CRC_POLYNOMIAL, checksum16
from .crypto import encrypt
from .sequence import send_tag
from .types import CommandAction, SendMessageType

logger = logging.getLogger(__name__)

CRC_SIZE = 2
MAX_LENGTH_FIELD = 0xFF
SEND_MESSAGE_MARKER = 0x10
SEND_MESSAGE_HEADER = struct.Struct("<QBBB")  # pump MAC, counter, marker, length
SUB_MESSAGE_HEADER = struct.Struct(">BH")  # tag, opcode
MAX_SUB_MESSAGE_PAYLOAD = MAX_LENGTH_FIELD - SUB_MESSAGE_HEADER.size - CRC_SIZE


def command_header_size(action: CommandAction) -> int:
    """Size of the command envelope up to the payload."""
    return len(action.header) + 1


def max_command_payload(action: CommandAction) -> int:
    return MAX_LENGTH_FIELD - command_header_size(action)


def build_command_envelope(action: CommandAction, payload: bytes = b"") -> bytes:
    """Build a plain command envelope.

    Args:
        action: Envelope action; its ``header`` is written verbatim.
        payload: Action-specific payload bytes.

    Returns:
        ``header + payload + 2`` bytes ending in a little-endian CRC.

    Raises:
        ValueError: If the payload would overflow the length byte.
        ChecksumError: If the checksum cannot be computed.
    """
    payload = bytes(payload)
    header = action.header
    header_size = command_header_size(action)
    if len(payload) > max_command_payload(action):
        raise ValueError(
            f"Command payload must be at most {max_command_payload(action)} bytes, "
            f"got {len(payload)}"
        )

    length = header_size + len(payload)
    buffer = bytearray(length + CRC_SIZE)
    buffer[: len(header)] = header
    buffer[len(header)] = length
    buffer[header_size:length] = payload
    crc = checksum16(buffer, CRC_INITIAL, CRC_POLYNOMIAL, length)
    struct.pack_into("<H", buffer, length, crc)
    return bytes(buffer)


def build_sub_message(send_type: SendMessageType, payload: bytes = b"") -> bytes:
    """Build the cleartext sub-message carried inside a send-message envelope."""
    payload = bytes(payload)
    if len(payload) > MAX_SUB_MESSAGE_PAYLOAD:
        raise ValueError(
            f"Send message payload must be at most {MAX_SUB_MESSAGE_PAYLOAD} bytes, "
            f"got {len(payload)}"
        )

    length = SUB_MESSAGE_HEADER.size + len(payload)
    buffer = bytearray(length + CRC_SIZE)
    SUB_MESSAGE_HEADER.pack_into(buffer, 0, send_tag(send_type), send_type.code)
    buffer[SUB_MESSAGE_HEADER.size:length] = payload
    crc = checksum16(buffer, CRC_INITIAL, CRC_POLYNOMIAL, length)
    struct.pack_into(">H", buffer, length, crc)
    return bytes(buffer)


def build_send_message_envelope(
    send_type: SendMessageType,
    session: PumpSession,
    payload: bytes = b"",
) -> bytes:
    """Build an encrypted send-message envelope for ``session``.

    The session's current sequence counter is embedded as-is; it is not
    advanced here.

    Raises:
        ValueError: If the payload is too long for the sub-message.
        ChecksumError: If the sub-message checksum cannot be computed.
        EncryptionError: If the session key material is unusable.
    """
    encrypted = encrypt(session.key, session.iv, build_sub_message(send_type, payload))
    header = SEND_MESSAGE_HEADER.pack(
        session.pump_mac,
        session.sequence_counter,
        SEND_MESSAGE_MARKER,
        len(encrypted),
    )
    logger.debug(
        "Built %s envelope: counter=%d, %d encrypted bytes",
        send_type.name,
        session.sequence_counter,
        len(encrypted),
    )
    return header + encrypted
