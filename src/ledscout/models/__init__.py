"""
Pydantic models for ledscout.
"""
from .common import (
    BasePydanticModel,
    DeviceKind,
    ProbeStatus,
    ScanStatus,
)
from .device import (
    DiscoveredDevice,
    PixelitDevice,
    ProbeOutcome,
    ScanResult,
    ScanStats,
    WledDevice,
)
from .wled import WledInfo, WledLedsInfo, WledState

__all__ = [
    "BasePydanticModel",
    "DeviceKind",
    "DiscoveredDevice",
    "PixelitDevice",
    "ProbeOutcome",
    "ProbeStatus",
    "ScanResult",
    "ScanStats",
    "ScanStatus",
    "WledDevice",
    "WledInfo",
    "WledLedsInfo",
    "WledState",
]
