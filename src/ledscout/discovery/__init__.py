"""
Subnet discovery of WLED and PixelIt controllers.

The public surface is ``DeviceScanner`` and the two one-shot helpers; the
remaining modules are the building blocks it wires together.
"""

from .network import candidate_addresses, get_local_ipv4_addresses, is_private_address, is_private_subnet
from .scanner import DeviceScanner, scan_for_pixelit_devices, scan_for_wled_devices

__all__ = [
    "DeviceScanner",
    "candidate_addresses",
    "get_local_ipv4_addresses",
    "is_private_address",
    "is_private_subnet",
    "scan_for_pixelit_devices",
    "scan_for_wled_devices",
]
