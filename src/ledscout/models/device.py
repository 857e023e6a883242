from typing import Generic, Literal, TypeVar

from pydantic import Field

from .common import BasePydanticModel, DeviceKind, ProbeStatus, ScanStatus


class DiscoveredDevice(BasePydanticModel):
    ip_address: str # Dotted quad, unique within one scan result
    name: str # User-facing label, e.g. "WLED (192.168.1.20)"
    endpoint: str # Base URL the device answered on
    response_content: str = Field(default="", repr=False) # Raw body kept for diagnostics
    kind: DeviceKind

class WledDevice(DiscoveredDevice):
    kind: Literal[DeviceKind.WLED] = DeviceKind.WLED
    led_count: int = Field(default=0, ge=0, description="Number of LEDs reported by the controller, 0 if unknown.")
    firmware_version: str | None = None # Only known when /json/info answered

class PixelitDevice(DiscoveredDevice):
    kind: Literal[DeviceKind.PIXELIT] = DeviceKind.PIXELIT


DeviceT = TypeVar("DeviceT", bound=DiscoveredDevice)


class ProbeOutcome(BasePydanticModel):
    """Result of probing one candidate address."""
    status: ProbeStatus
    ip_address: str
    device: WledDevice | PixelitDevice | None = None

    @classmethod
    def found(cls, device: DiscoveredDevice) -> "ProbeOutcome":
        return cls(status=ProbeStatus.FOUND, ip_address=device.ip_address, device=device)

    @classmethod
    def not_found(cls, ip_address: str) -> "ProbeOutcome":
        return cls(status=ProbeStatus.NOT_FOUND, ip_address=ip_address)

    @classmethod
    def cancelled(cls, ip_address: str) -> "ProbeOutcome":
        return cls(status=ProbeStatus.CANCELLED, ip_address=ip_address)


class ScanStats(BasePydanticModel):
    """Counters from one sweep's scheduler and aggregator."""
    dispatched: int = 0 # Probes started
    peak_in_flight: int = 0
    cancelled_probes: int = 0
    outcome_counts: dict[str, int] = Field(default_factory=dict)


class ScanResult(BasePydanticModel, Generic[DeviceT]):
    """Outcome of a full subnet sweep.

    ``devices`` is only populated for ``ScanStatus.COMPLETED``. Safety aborts and
    cancellation return an empty list, and ``status`` tells them apart from a
    sweep that simply found nothing. Each result carries its own ``stats``, so
    concurrent sweeps on one scanner never share counters.
    """
    status: ScanStatus
    subnet: str | None = None
    devices: list[DeviceT] = Field(default_factory=list)
    stats: ScanStats | None = None # None when the sweep was aborted before dispatch

    @property
    def cancelled(self) -> bool:
        return self.status == ScanStatus.CANCELLED

    @property
    def aborted(self) -> bool:
        return self.status in (ScanStatus.ABORTED_NO_INTERFACE, ScanStatus.ABORTED_NOT_PRIVATE)
