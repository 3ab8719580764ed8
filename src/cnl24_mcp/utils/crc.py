"""CRC-16 (CCITT family) used by every checksummed envelope.

The pump computes checksums MSB-first with no reflection and no final XOR,
which for ``initial=0xFFFF`` and ``polynomial=0x1021`` is the variant often
listed as CRC-16/CCITT-FALSE.
"""

from __future__ import annotations

from functools import lru_cache

from ..exceptions import ChecksumError

CRC_INITIAL = 0xFFFF
CRC_POLYNOMIAL = 0x1021


@lru_cache(maxsize=None)
def _crc_table(polynomial: int) -> tuple[int, ...]:
    table = []
    for byte in range(256):
        crc = byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ polynomial) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
        table.append(crc)
    return tuple(table)


def checksum16(
    buffer: bytes | bytearray,
    initial: int = CRC_INITIAL,
    polynomial: int = CRC_POLYNOMIAL,
    length: int | None = None,
) -> int:
    """Compute a 16-bit CRC over the first ``length`` bytes of ``buffer``.

    Envelope builders allocate their buffer with two trailing bytes for the
    checksum and pass ``length`` so those bytes are left out of the sum.

    Args:
        buffer: Bytes to checksum.
        initial: Starting register value.
        polynomial: Generator polynomial.
        length: Number of leading bytes covered; the whole buffer if ``None``.

    Raises:
        ChecksumError: If ``length`` does not describe a prefix of ``buffer``.
    """
    if length is None:
        length = len(buffer)
    if not 0 <= length <= len(buffer):
        raise ChecksumError(
            f"Checksum range of {length} bytes does not fit a {len(buffer)}-byte buffer"
        )

    table = _crc_table(polynomial & 0xFFFF)
    crc = initial & 0xFFFF
    for byte in memoryview(buffer)[:length]:
        crc = ((crc << 8) & 0xFFFF) ^ table[(crc >> 8) ^ byte]
    return crc
