"""USB transport to the Contour Next Link bridge."""

from .usb_connection import USBConnection, DeviceInfo
