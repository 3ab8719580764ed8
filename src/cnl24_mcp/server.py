"""MCP server entry point for the Contour Next Link 2.4 pump bridge.

Exposes request-encoding and sending tools via the Model Context Protocol
using the official Python MCP SDK with stdio transport. Pump replies are
not decoded here.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .protocol.commands import transmit_pump_request
from .protocol.envelope import build_command_envelope, build_send_message_envelope
from .protocol.sequence import send_tag
from .protocol.types import CommandAction, SendMessageType
from .session import PumpSession
from .transport.usb_connection import USBConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "cnl24",
    instructions="MCP server for Medtronic 600-series pumps via the Contour Next Link 2.4",
)

# Global connection state
_connection: USBConnection | None = None
_session: PumpSession | None = None


def _get_connection() -> USBConnection:
    """Get the active USB connection, raising if not connected."""
    if _connection is None or not _connection.connected:
        raise RuntimeError(
            "Not connected to device. Use the 'connect' tool first."
        )
    return _connection


def _get_session() -> PumpSession:
    if _session is None:
        raise RuntimeError(
            "No pump session. Use the 'open_session' tool first."
        )
    return _session


def _parse_hex(value: str) -> bytes:
    return bytes.fromhex(value.replace(":", " "))


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect() -> dict[str, Any]:
    """Establish a USB connection to the Contour Next Link 2.4 bridge.

    Auto-discovers the bridge by USB vendor/product ID (0x1A79:0x6210).
    """
    global _connection
    if _connection is not None and _connection.connected:
        return {
            "connected": True,
            "message": "Already connected",
            "product": _connection.device_info.product,
        }

    _connection = USBConnection()
    info = _connection.open()
    result: dict[str, Any] = {"connected": True}
    result.update(info.to_dict())
    return result


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the USB connection to the bridge."""
    global _connection
    if _connection is None:
        return {"disconnected": True}
    _connection.close()
    _connection = None
    return {"disconnected": True}


# ─── SESSION TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def open_session(
    pump_mac: str,
    key_hex: str,
    iv_hex: str,
    sequence_counter: int = 1,
) -> dict[str, Any]:
    """Start a pump session with previously negotiated key material.

    Args:
        pump_mac: Pump MAC as 16 hex digits.
        key_hex: 16-byte AES key, hex encoded.
        iv_hex: 16-byte AES IV, hex encoded.
        sequence_counter: Starting sequence counter (0-255).
    """
    global _session
    _session = PumpSession(
        pump_mac=int(pump_mac, 16),
        key=_parse_hex(key_hex),
        iv=_parse_hex(iv_hex),
        sequence_counter=sequence_counter,
    )
    logger.info("Opened session for pump %016x", _session.pump_mac)
    return _session.to_dict()


@mcp.tool()
def session_status() -> dict[str, Any]:
    """Report the active pump session and its sequence counter."""
    if _session is None:
        return {"session": False}
    result: dict[str, Any] = {"session": True}
    result.update(_session.to_dict())
    return result


# ─── ENCODING TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def encode_command(action: str, payload_hex: str = "") -> dict[str, Any]:
    """Encode a plain command envelope without sending it.

    Args:
        action: CommandAction name (e.g. "CHANNEL_NEGOTIATE").
        payload_hex: Payload bytes, hex encoded.
    """
    command_action = CommandAction[action.strip().upper()]
    envelope = build_command_envelope(command_action, _parse_hex(payload_hex))
    return {
        "action": command_action.name,
        "envelope": envelope.hex(),
        "length": len(envelope),
    }


@mcp.tool()
def encode_send_message(send_type: str, payload_hex: str = "") -> dict[str, Any]:
    """Encode an encrypted send-message envelope for the active session.

    Does not send anything and does not advance the sequence counter.

    Args:
        send_type: Send message type (e.g. "time_request").
        payload_hex: Payload bytes, hex encoded.
    """
    session = _get_session()
    message_type = SendMessageType.from_label(send_type)
    with session.lock:
        counter = session.sequence_counter
        envelope = build_send_message_envelope(
            message_type, session, _parse_hex(payload_hex)
        )
    pump_request = build_command_envelope(CommandAction.PUMP_REQUEST, envelope)
    return {
        "send_type": message_type.label,
        "sequence_counter": counter,
        "send_message": envelope.hex(),
        "pump_request": pump_request.hex(),
    }


@mcp.tool()
def send_pump_request(send_type: str, payload_hex: str = "") -> dict[str, Any]:
    """Encode a pump request for the active session and send it to the bridge.

    The session's sequence counter advances once the bridge accepts the bytes.

    Args:
        send_type: Send message type (e.g. "read_pump_status_request").
        payload_hex: Payload bytes, hex encoded.
    """
    conn = _get_connection()
    session = _get_session()
    message_type = SendMessageType.from_label(send_type)
    request = transmit_pump_request(conn, session, message_type, _parse_hex(payload_hex))
    return {
        "sent": True,
        "send_type": message_type.label,
        "sequence_counter": request.sequence_counter,
        "next_sequence_counter": session.sequence_counter,
        "length": len(request.envelope),
    }


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("cnl24://session/status")
def resource_session_status() -> str:
    """Connection state and sequence counter."""
    connected = _connection is not None and _connection.connected
    status: dict[str, Any] = {"connected": connected}
    if _session is not None:
        status.update(_session.to_dict())
    return json.dumps(status)


@mcp.resource("cnl24://catalog/send-message-types")
def resource_send_message_types() -> str:
    """Send message types with their opcodes and tag bytes."""
    types = [
        {
            "name": t.label,
            "code": f"0x{t.code:04X}",
            "tag": f"0x{send_tag(t):02X}",
        }
        for t in SendMessageType
    ]
    return json.dumps({"send_message_types": types, "count": len(types)})


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
