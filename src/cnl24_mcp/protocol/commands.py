"""High-level pump request builders and the transmission hook.

A pump request is a ``PUMP_REQUEST`` command envelope whose payload is an
encrypted send-message envelope. Sending one through :func:`send_envelope`
advances the session's sequence counter, but only after the transport has
accepted the bytes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from ..session import PumpSession
from .envelope import build_command_envelope, build_send_message_envelope
from .types import CommandAction, CommandType, SendMessageType

logger = logging.getLogger(__name__)

MIN_BASAL_PATTERN = 1
MAX_BASAL_PATTERN = 8


class Transport(Protocol):
    def write(self, data: bytes) -> int: ...


@dataclass(frozen=True)
class RequestMessage:
    """A finished request ready for the transport."""

    command_type: CommandType
    envelope: bytes
    sequence_counter: int | None = None

    def __repr__(self) -> str:
        return (
            f"RequestMessage(command_type={self.command_type.name}, "
            f"sequence_counter={self.sequence_counter}, "
            f"envelope={self.envelope.hex(' ')})"
        )


def build_command_request(
    command_type: CommandType,
    action: CommandAction,
    payload: bytes = b"",
) -> RequestMessage:
    """Build a plain (unencrypted) command request."""
    return RequestMessage(command_type, build_command_envelope(action, payload))


def build_pump_request(
    send_type: SendMessageType,
    session: PumpSession,
    payload: bytes = b"",
) -> RequestMessage:
    """Build an encrypted pump request carrying a send-message envelope.

    Args:
        send_type: Opcode for the sub-message.
        session: Session supplying pump MAC, key material and counter.
        payload: Opcode-specific payload bytes.

    Raises:
        ValueError: If the payload does not fit the envelopes.
        ChecksumError: If a checksum cannot be computed.
        EncryptionError: If the session key material is unusable.
    """
    with session.lock:
        counter = session.sequence_counter
        send_message = build_send_message_envelope(send_type, session, payload)
    return RequestMessage(
        CommandType.SEND_MESSAGE,
        build_command_envelope(CommandAction.PUMP_REQUEST, send_message),
        counter,
    )


def send_envelope(envelope: bytes, transport: Transport, session: PumpSession) -> None:
    """Hand ``envelope`` to the transport, then advance the session counter.

    If the transport raises, the error propagates and the counter is left
    alone, so a rebuilt retry carries the same counter value.
    """
    with session.lock:
        try:
            transport.write(envelope)
        except OSError as e:
            logger.warning(
                "Send failed at sequence counter %d: %s", session.sequence_counter, e
            )
            raise
        session.advance_sequence_counter()


def transmit_pump_request(
    transport: Transport,
    session: PumpSession,
    send_type: SendMessageType,
    payload: bytes = b"",
) -> RequestMessage:
    """Build and send a pump request without letting another request interleave."""
    with session.lock:
        request = build_pump_request(send_type, session, payload)
        send_envelope(request.envelope, transport, session)
    logger.debug("Sent %s with sequence counter %d", send_type.name, request.sequence_counter)
    return request


def build_begin_ehsm_session(session: PumpSession) -> RequestMessage:
    """Build a request that opens an EHSM session on the pump."""
    return build_pump_request(SendMessageType.BEGIN_EHSM_SESSION, session)


def build_end_ehsm_session(session: PumpSession) -> RequestMessage:
    """Build a request that closes the EHSM session.

    Shares its opcode with the begin request; only the tag byte differs.
    """
    return build_pump_request(SendMessageType.END_EHSM_SESSION, session)


def build_time_request(session: PumpSession) -> RequestMessage:
    return build_pump_request(SendMessageType.TIME_REQUEST, session)


def build_read_pump_status(session: PumpSession) -> RequestMessage:
    return build_pump_request(SendMessageType.READ_PUMP_STATUS_REQUEST, session)


def build_read_basal_pattern(session: PumpSession, pattern_number: int) -> RequestMessage:
    """Build a basal pattern read request.

    Args:
        session: Pump session.
        pattern_number: Basal pattern 1-8.
    """
    if not MIN_BASAL_PATTERN <= pattern_number <= MAX_BASAL_PATTERN:
        raise ValueError(
            f"Basal pattern must be {MIN_BASAL_PATTERN}-{MAX_BASAL_PATTERN}, "
            f"got {pattern_number}"
        )
    return build_pump_request(
        SendMessageType.READ_BASAL_PATTERN_REQUEST, session, bytes([pattern_number])
    )
