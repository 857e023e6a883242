"""
Public scan entry points: sweep the local private /24 for WLED or PixelIt controllers.
"""
import asyncio
from collections.abc import Callable

import structlog

from ..config import Config
from ..models.common import ScanStatus
from ..models.device import DeviceT, PixelitDevice, ScanResult, ScanStats, WledDevice
from .network import candidate_addresses, get_local_ipv4_addresses, is_private_subnet, subnet_prefix
from .ping import Pinger, SubprocessPinger
from .probes import PixelitProbe, ProtocolProbe, WledProbe
from .scheduler import BoundedProbeScheduler, ResultAggregator
from .transport import AiohttpTransport, HttpTransport

logger = structlog.get_logger(__name__)


class DeviceScanner:
    """
    Finds WLED and PixelIt controllers on the host's private subnet.

    The scanner owns its HTTP transport; every scan it runs reuses that one
    transport, while scheduler and aggregator are created fresh per scan.
    Use as an async context manager, or call ``close()`` when done.
    """

    def __init__(
        self,
        app_config: Config | None = None,
        transport: HttpTransport | None = None,
        pinger: Pinger | None = None,
        address_provider: Callable[[str | None], list[str]] | None = None,
        subnet_validator: Callable[[str], bool] | None = None,
    ):
        self.app_config = app_config or Config()
        self.scanner_config = self.app_config.scanner
        self.transport = transport or AiohttpTransport(self.app_config.http)
        self.pinger = pinger or SubprocessPinger()
        self._address_provider = address_provider or get_local_ipv4_addresses
        self._subnet_validator = subnet_validator or is_private_subnet
        self.logger = logger.bind(service="DeviceScanner")

    async def __aenter__(self) -> "DeviceScanner":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()

    async def close(self) -> None:
        await self.transport.close()

    async def scan_for_wled_devices(self, cancel_event: asyncio.Event | None = None) -> ScanResult[WledDevice]:
        """Sweep the local subnet for WLED controllers."""
        probe = WledProbe(self.transport, self.pinger, self.scanner_config)
        return await self._scan(probe, ScanResult[WledDevice], cancel_event)

    async def scan_for_pixelit_devices(self, cancel_event: asyncio.Event | None = None) -> ScanResult[PixelitDevice]:
        """Sweep the local subnet for PixelIt displays."""
        probe = PixelitProbe(self.transport, self.pinger, self.scanner_config)
        return await self._scan(probe, ScanResult[PixelitDevice], cancel_event)

    def detect_subnet(self) -> str | None:
        """Return the configured subnet override, or the prefix of the first usable local address."""
        if self.scanner_config.subnet:
            return self.scanner_config.subnet
        addresses = self._address_provider(self.scanner_config.interface)
        if not addresses:
            return None
        # Only the primary (first) interface is swept
        return subnet_prefix(addresses[0])

    def _is_private(self, subnet: str) -> bool:
        try:
            return bool(self._subnet_validator(subnet))
        except Exception as e:
            self.logger.warning("Subnet validator failed, refusing to scan", subnet=subnet, error=str(e))
            return False

    async def _scan(
        self,
        probe: ProtocolProbe,
        result_type: type[ScanResult[DeviceT]],
        cancel_event: asyncio.Event | None,
    ) -> ScanResult[DeviceT]:
        if cancel_event is None:
            cancel_event = asyncio.Event()
        log = self.logger.bind(probe=probe.name)

        subnet = self.detect_subnet()
        if subnet is None:
            log.warning("No usable local network interface found, nothing to scan.")
            return result_type(status=ScanStatus.ABORTED_NO_INTERFACE)

        if not self._is_private(subnet):
            log.warning("Refusing to scan a subnet outside private address space.", subnet=subnet)
            return result_type(status=ScanStatus.ABORTED_NOT_PRIVATE, subnet=subnet)

        log = log.bind(subnet=subnet)
        log.info("Starting subnet sweep", max_concurrency=self.scanner_config.max_concurrency)

        scheduler = BoundedProbeScheduler(self.scanner_config.max_concurrency, name=probe.name)
        aggregator: ResultAggregator[DeviceT] = ResultAggregator(self.scanner_config.sort_order)

        status = await scheduler.run(candidate_addresses(subnet), probe, aggregator, cancel_event)
        devices = await aggregator.finalize()
        stats = ScanStats(
            dispatched=scheduler.dispatched,
            peak_in_flight=scheduler.peak_in_flight,
            cancelled_probes=scheduler.cancelled_probes,
            outcome_counts=aggregator.outcome_counts,
        )

        if status == ScanStatus.CANCELLED:
            log.info("Subnet sweep cancelled.", dispatched=scheduler.dispatched, found_before_cancel=len(devices))
            return result_type(status=ScanStatus.CANCELLED, subnet=subnet, stats=stats)

        log.info("Subnet sweep finished", found=len(devices), outcomes=aggregator.outcome_counts)
        return result_type(status=ScanStatus.COMPLETED, subnet=subnet, devices=devices, stats=stats)


async def scan_for_wled_devices(
    cancel_event: asyncio.Event | None = None, app_config: Config | None = None
) -> ScanResult[WledDevice]:
    """One-shot WLED scan with a scanner built from ``app_config`` (or the environment)."""
    async with DeviceScanner(app_config) as scanner:
        return await scanner.scan_for_wled_devices(cancel_event)


async def scan_for_pixelit_devices(
    cancel_event: asyncio.Event | None = None, app_config: Config | None = None
) -> ScanResult[PixelitDevice]:
    """One-shot PixelIt scan with a scanner built from ``app_config`` (or the environment)."""
    async with DeviceScanner(app_config) as scanner:
        return await scanner.scan_for_pixelit_devices(cancel_event)
