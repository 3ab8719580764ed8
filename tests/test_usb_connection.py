"""Tests for the USB connection using a fake hidapi backend."""

import sys
import types

import pytest

from cnl24_mcp.protocol.commands import build_time_request, send_envelope
from cnl24_mcp.transport.usb_connection import PRODUCT_ID, VENDOR_ID, USBConnection


class FakeHidDevice:
    def __init__(self, write_result=None):
        self.opened_with = None
        self.written: list[bytes] = []
        self.closed = False
        self.write_result = write_result

    def open(self, vendor_id, product_id):
        self.opened_with = (vendor_id, product_id)

    def set_nonblocking(self, flag):
        pass

    def get_manufacturer_string(self):
        return "Ascensia Diabetes Care"

    def get_product_string(self):
        return "Contour Next Link 2.4"

    def get_serial_number_string(self):
        return "1234567890"

    def write(self, data):
        self.written.append(bytes(data))
        return len(data) if self.write_result is None else self.write_result

    def close(self):
        self.closed = True


@pytest.fixture
def fake_hid(monkeypatch):
    device = FakeHidDevice()
    module = types.ModuleType("hid")
    module.device = lambda: device
    monkeypatch.setitem(sys.modules, "hid", module)
    return device


def test_open_via_hidapi(fake_hid):
    conn = USBConnection()
    info = conn.open()
    assert conn.connected
    assert fake_hid.opened_with == (VENDOR_ID, PRODUCT_ID)
    assert info.product == "Contour Next Link 2.4"
    assert info.to_dict()["vendor_id"] == "0x1a79"


def test_open_failure_raises_connection_error(monkeypatch):
    """If neither backend opens, ConnectionError names the device IDs."""
    module = types.ModuleType("hid")

    def broken_device():
        raise OSError("open failed")

    module.device = broken_device
    monkeypatch.setitem(sys.modules, "hid", module)

    def no_pyusb(self):
        raise ConnectionError("Device not found via pyusb")

    monkeypatch.setattr(USBConnection, "_open_pyusb", no_pyusb)
    with pytest.raises(ConnectionError, match="0x1a79:0x6210"):
        USBConnection().open()


def test_write_passes_bytes_through(fake_hid):
    conn = USBConnection()
    conn.open()
    assert conn.write(b"\x05\x02\xaa\xbb") == 4
    assert fake_hid.written == [b"\x05\x02\xaa\xbb"]


def test_write_when_disconnected():
    with pytest.raises(ConnectionError):
        USBConnection().write(b"\x00")


def test_write_failure_raises_oserror(fake_hid):
    fake_hid.write_result = -1
    conn = USBConnection()
    conn.open()
    with pytest.raises(OSError):
        conn.write(b"\x00")


def test_failed_usb_write_keeps_counter(fake_hid, session):
    """A failed USB write does not advance the sequence counter."""
    fake_hid.write_result = -1
    conn = USBConnection()
    conn.open()
    with pytest.raises(OSError):
        send_envelope(build_time_request(session).envelope, conn, session)
    assert session.sequence_counter == 7

    fake_hid.write_result = None
    send_envelope(build_time_request(session).envelope, conn, session)
    assert session.sequence_counter == 8


def test_close(fake_hid):
    conn = USBConnection()
    conn.open()
    conn.close()
    assert fake_hid.closed
    assert not conn.connected
    conn.close()


def test_open_failure_reports_each_backend(monkeypatch):
    """Both backend errors are named when the bridge cannot be opened."""
    module = types.ModuleType("hid")

    def broken_device():
        raise OSError("access denied")

    module.device = broken_device
    monkeypatch.setitem(sys.modules, "hid", module)

    def no_pyusb(self):
        raise ConnectionError("no matching device on the bus")

    monkeypatch.setattr(USBConnection, "_open_pyusb", no_pyusb)
    conn = USBConnection()
    with pytest.raises(ConnectionError) as excinfo:
        conn.open()
    message = str(excinfo.value)
    assert "hidapi: access denied" in message
    assert "pyusb: no matching device on the bus" in message
    assert not conn.connected
