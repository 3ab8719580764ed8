"""Shared fixtures for request encoding tests."""

import pytest

from cnl24_mcp.session import PumpSession

ZERO_KEY = bytes(16)
ZERO_IV = bytes(16)
TEST_KEY = bytes.fromhex("000102030405060708090a0b0c0d0e0f")
TEST_IV = bytes.fromhex("f0e1d2c3b4a5968778695a4b3c2d1e0f")
TEST_PUMP_MAC = 0x0023F745EE1A2B3C


class FakeTransport:
    """Records written envelopes; raises the queued errors first."""

    def __init__(self, failures=None):
        self.writes: list[bytes] = []
        self.failures = list(failures or [])

    def write(self, data: bytes) -> int:
        if self.failures:
            raise self.failures.pop(0)
        self.writes.append(bytes(data))
        return len(data)


@pytest.fixture
def session():
    return PumpSession(pump_mac=TEST_PUMP_MAC, key=TEST_KEY, iv=TEST_IV, sequence_counter=7)


@pytest.fixture
def zero_session():
    return PumpSession(pump_mac=0, key=ZERO_KEY, iv=ZERO_IV, sequence_counter=0)


@pytest.fixture
def transport():
    return FakeTransport()
