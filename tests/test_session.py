"""Tests for pump session state."""

import pytest

from cnl24_mcp.session import PumpSession

from conftest import TEST_IV, TEST_KEY


def test_defaults():
    session = PumpSession(pump_mac=1, key=TEST_KEY, iv=TEST_IV)
    assert session.sequence_counter == 1


def test_advance_sequence_counter():
    session = PumpSession(pump_mac=1, key=TEST_KEY, iv=TEST_IV, sequence_counter=41)
    assert session.advance_sequence_counter() == 42
    assert session.sequence_counter == 42


def test_advance_wraps_at_one_byte():
    """255 wraps to 0."""
    session = PumpSession(pump_mac=1, key=TEST_KEY, iv=TEST_IV, sequence_counter=255)
    session.advance_sequence_counter()
    assert session.sequence_counter == 0


def test_key_material_stored_as_bytes():
    session = PumpSession(pump_mac=1, key=bytearray(TEST_KEY), iv=bytearray(TEST_IV))
    assert isinstance(session.key, bytes)
    assert isinstance(session.iv, bytes)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"pump_mac": -1},
        {"pump_mac": 1 << 64},
        {"sequence_counter": 256},
        {"sequence_counter": -1},
        {"key": "not bytes"},
    ],
)
def test_rejects_invalid_fields(kwargs):
    fields = {"pump_mac": 1, "key": TEST_KEY, "iv": TEST_IV}
    fields.update(kwargs)
    with pytest.raises(ValueError):
        PumpSession(**fields)


def test_to_dict():
    session = PumpSession(pump_mac=0x0023F745EE1A2B3C, key=TEST_KEY, iv=TEST_IV)
    assert session.to_dict() == {"pump_mac": "0023f745ee1a2b3c", "sequence_counter": 1}
