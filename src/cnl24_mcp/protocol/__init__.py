"""Protocol layer: command types, envelope builders, encryption and request sending."""

from .types import CommandAction, CommandType, SendMessageType
from .envelope import build_command_envelope, build_send_message_envelope
from .commands import RequestMessage, build_pump_request, send_envelope
