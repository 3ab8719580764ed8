"""Shared helpers."""

from .crc import checksum16
