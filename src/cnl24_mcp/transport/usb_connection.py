"""USB HID link to the Contour Next Link 2.4 bridge.

hidapi is tried first and pyusb (libusb) second. Envelopes are written
exactly as built; the bridge link adds no framing of its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

VENDOR_ID = 0x1A79
PRODUCT_ID = 0x6210
HID_INTERFACE = 0
EP_OUT = 0x01
WRITE_TIMEOUT_MS = 1000


@dataclass
class DeviceInfo:
    """USB descriptor strings of the attached bridge."""

    vendor_id: int = VENDOR_ID
    product_id: int = PRODUCT_ID
    manufacturer: str = ""
    product: str = ""
    serial: str = ""

    def to_dict(self) -> dict:
        return {
            "vendor_id": f"{self.vendor_id:#06x}",
            "product_id": f"{self.product_id:#06x}",
            "manufacturer": self.manufacturer,
            "product": self.product,
            "serial": self.serial,
        }


class USBConnection:
    """Write-only transport for pump request envelopes.

    Usage::

        link = USBConnection()
        link.open()
        send_envelope(request.envelope, link, session)
        link.close()
    """

    def __init__(
        self,
        vendor_id: int = VENDOR_ID,
        product_id: int = PRODUCT_ID,
        timeout_ms: int = WRITE_TIMEOUT_MS,
    ) -> None:
        self._vendor_id = vendor_id
        self._product_id = product_id
        self._timeout_ms = timeout_ms
        self._device = None
        self._backend: str = ""
        self._device_info = DeviceInfo(vendor_id=vendor_id, product_id=product_id)

    @property
    def connected(self) -> bool:
        return self._device is not None

    @property
    def device_info(self) -> DeviceInfo:
        return self._device_info

    def _ids(self) -> str:
        return f"{self._vendor_id:#06x}:{self._product_id:#06x}"

    def open(self) -> DeviceInfo:
        """Claim the bridge.

        Raises:
            ConnectionError: If no backend can open the bridge.
        """
        errors = []
        for backend, opener in (("hidapi", self._open_hidapi), ("pyusb", self._open_pyusb)):
            try:
                self._device, self._device_info = opener()
            except Exception as e:
                logger.debug("%s could not open %s: %s", backend, self._ids(), e)
                errors.append(f"{backend}: {e}")
                continue
            self._backend = backend
            logger.info(
                "Contour Next Link %s opened via %s (serial %s)",
                self._ids(),
                backend,
                self._device_info.serial or "unknown",
            )
            return self._device_info

        raise ConnectionError(
            f"Could not open Contour Next Link ({self._ids()}); "
            f"check the bridge is plugged in and accessible. {'; '.join(errors)}"
        )

    def _open_hidapi(self):
        import hid

        device = hid.device()
        device.open(self._vendor_id, self._product_id)
        device.set_nonblocking(False)
        info = DeviceInfo(
            self._vendor_id,
            self._product_id,
            device.get_manufacturer_string() or "",
            device.get_product_string() or "",
            device.get_serial_number_string() or "",
        )
        return device, info

    def _open_pyusb(self):
        import usb.core
        import usb.util

        device = usb.core.find(idVendor=self._vendor_id, idProduct=self._product_id)
        if device is None:
            raise ConnectionError("no matching device on the bus")
        if device.is_kernel_driver_active(HID_INTERFACE):
            device.detach_kernel_driver(HID_INTERFACE)
        usb.util.claim_interface(device, HID_INTERFACE)

        def descriptor(index):
            return usb.util.get_string(device, index) or ""

        info = DeviceInfo(
            self._vendor_id,
            self._product_id,
            descriptor(device.iManufacturer),
            descriptor(device.iProduct),
            descriptor(device.iSerialNumber),
        )
        return device, info

    def close(self) -> None:
        """Release the bridge. Safe to call when already closed."""
        if self._device is None:
            return
        device, backend = self._device, self._backend
        self._device = None
        self._backend = ""
        try:
            if backend == "hidapi":
                device.close()
            else:
                import usb.util
                usb.util.release_interface(device, HID_INTERFACE)
        except Exception as e:
            logger.warning("Releasing %s via %s failed: %s", self._ids(), backend, e)
        logger.info("Contour Next Link %s closed", self._ids())

    def write(self, data: bytes) -> int:
        """Send one envelope to the bridge and return the byte count.

        Raises:
            ConnectionError: If the bridge is not open.
            OSError: If the backend reports a failed write.
        """
        if self._device is None:
            raise ConnectionError("Contour Next Link is not open")

        if self._backend == "hidapi":
            written = self._device.write(bytes(data))
        else:
            written = self._device.write(EP_OUT, bytes(data), timeout=self._timeout_ms)

        if written is None or written < 0:
            raise OSError(f"USB write failed ({self._backend} returned {written})")
        logger.debug("Wrote %d bytes via %s", written, self._backend)
        return written
