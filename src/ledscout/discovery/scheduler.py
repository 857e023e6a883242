"""
Bounded fan-out of probes over a candidate list, and collection of their results.
"""
import asyncio
import ipaddress
from collections.abc import Awaitable, Callable, Iterable
from typing import Generic

import structlog

from ..config import SortOrder
from ..models.common import ProbeStatus, ScanStatus
from ..models.device import DeviceT, ProbeOutcome
from .cancellation import CANCELLED, race_cancellation

logger = structlog.get_logger(__name__)

DEFAULT_MAX_CONCURRENCY = 10

Probe = Callable[[str, asyncio.Event], Awaitable[ProbeOutcome]]


def sort_key(order: SortOrder) -> Callable[[str], object]:
    if order == SortOrder.NUMERIC:
        return lambda ip: int(ipaddress.IPv4Address(ip))
    return lambda ip: ip


class ResultAggregator(Generic[DeviceT]):
    """
    Single-consumer collector for probe outcomes.

    Probes hand their outcomes to ``submit`` from any task; one drain task owns
    the device map, so no lock is needed around it. ``finalize`` is called once,
    after the scheduler has settled, and returns the sorted device list.
    """

    _STOP = object()

    def __init__(self, sort_order: SortOrder = SortOrder.LEXICAL):
        self.sort_order = sort_order
        self._queue: asyncio.Queue = asyncio.Queue()
        self._devices: dict[str, DeviceT] = {}
        self._drain_task: asyncio.Task | None = None
        self._finalized = False
        self.outcome_counts: dict[str, int] = {status.value: 0 for status in ProbeStatus}

    def start(self) -> None:
        if self._drain_task is None:
            self._drain_task = asyncio.create_task(self._drain())

    def submit(self, outcome: ProbeOutcome) -> None:
        if self._finalized:
            raise RuntimeError("Cannot submit outcomes to a finalized aggregator.")
        self._queue.put_nowait(outcome)

    async def _drain(self) -> None:
        while True:
            item = await self._queue.get()
            if item is self._STOP:
                return
            status = ProbeStatus(item.status)
            self.outcome_counts[status.value] += 1
            if status == ProbeStatus.FOUND and item.device is not None:
                # setdefault keeps the first device reported for an address
                self._devices.setdefault(item.device.ip_address, item.device)

    async def finalize(self) -> list[DeviceT]:
        """Stop draining and return all found devices, ordered by IP address."""
        if self._finalized:
            raise RuntimeError("ResultAggregator.finalize() may only be called once.")
        self._finalized = True
        self.start()
        self._queue.put_nowait(self._STOP)
        await self._drain_task
        key = sort_key(self.sort_order)
        return sorted(self._devices.values(), key=lambda device: key(device.ip_address))


class BoundedProbeScheduler:
    """
    Runs one probe per candidate address with at most ``max_concurrency`` in flight.

    The semaphore slot is taken before a probe task is created, so no probe is
    started once the cancellation event is set. Probes already running see the
    event at their next await and report ``cancelled``.
    """

    def __init__(self, max_concurrency: int = DEFAULT_MAX_CONCURRENCY, name: str = "scan"):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1.")
        self.max_concurrency = max_concurrency
        self.logger = logger.bind(scheduler=name)
        self.dispatched = 0
        self.in_flight = 0
        self.peak_in_flight = 0
        self.cancelled_probes = 0

    async def run(
        self,
        candidates: Iterable[str],
        probe: Probe,
        aggregator: ResultAggregator,
        cancel_event: asyncio.Event,
    ) -> ScanStatus:
        """Probe every candidate, feeding outcomes to ``aggregator``.

        Returns ``ScanStatus.CANCELLED`` if the event fired before every
        candidate was dispatched or while probes were still running, else
        ``ScanStatus.COMPLETED``. Returns only after all dispatched probes settle.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks: set[asyncio.Task] = set()
        aggregator.start()
        cancelled = False

        try:
            for ip in candidates:
                acquired = await race_cancellation(semaphore.acquire(), cancel_event)
                if acquired is CANCELLED:
                    cancelled = True
                    break
                if cancel_event.is_set():
                    semaphore.release()
                    cancelled = True
                    break
                task = asyncio.create_task(self._run_one(ip, probe, semaphore, aggregator, cancel_event))
                tasks.add(task)
                task.add_done_callback(tasks.discard)
                self.dispatched += 1

            if tasks:
                await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        if cancelled or self.cancelled_probes:
            self.logger.info("Scan cancelled.", dispatched=self.dispatched)
            return ScanStatus.CANCELLED
        self.logger.debug("All probes settled.", dispatched=self.dispatched, peak_in_flight=self.peak_in_flight)
        return ScanStatus.COMPLETED

    async def _run_one(
        self,
        ip: str,
        probe: Probe,
        semaphore: asyncio.Semaphore,
        aggregator: ResultAggregator,
        cancel_event: asyncio.Event,
    ) -> None:
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            outcome = await probe(ip, cancel_event)
        except Exception as e:
            self.logger.exception("Probe raised unexpectedly, treating as not found", ip=ip, error=str(e))
            outcome = ProbeOutcome.not_found(ip)
        finally:
            self.in_flight -= 1
            semaphore.release()
        if outcome.status == ProbeStatus.CANCELLED:
            self.cancelled_probes += 1
        aggregator.submit(outcome)
