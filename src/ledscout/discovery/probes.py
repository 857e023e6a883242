"""
Protocol probes: decide whether a single address hosts a WLED or PixelIt controller.

Each probe pings the candidate first and only then spends HTTP time on it.
All technical failures (unreachable host, timeout, refused connection,
malformed body) end as ``ProbeOutcome.not_found``; the only other outcomes are
``found`` and ``cancelled``.
"""
import asyncio
import json
import xml.etree.ElementTree as ET
from collections.abc import Callable

import structlog
from pydantic import ValidationError

from ..config import ScannerConfig
from ..exceptions import TransportError
from ..models.device import DiscoveredDevice, PixelitDevice, ProbeOutcome, WledDevice
from ..models.wled import WledInfo, WledState
from .cancellation import CANCELLED, CancelledType, race_cancellation
from .ping import Pinger
from .transport import HttpResponse, HttpTransport

logger = structlog.get_logger(__name__)

WLED_SERVER_DESCRIPTION = "wled"
WLED_TITLE = "<title>wled</title>"
WLED_LED_COUNT_TAGS = ("ac", "lc", "count", "leds")
PIXELIT_TITLE = "<title>pixelit webui</title>"
PIXELIT_PATHS = ("/", "/config", "/api", "/status")


class ProtocolProbe:
    """Shared ping-then-HTTP plumbing for the concrete probes."""

    name = "probe"

    def __init__(self, transport: HttpTransport, pinger: Pinger, scanner_config: ScannerConfig | None = None):
        self.transport = transport
        self.pinger = pinger
        self.config = scanner_config or ScannerConfig()
        self.logger = logger.bind(probe=self.name)

    async def __call__(self, ip: str, cancel_event: asyncio.Event) -> ProbeOutcome:
        log = self.logger.bind(ip=ip)
        reachable = await self._ping(ip, cancel_event)
        if reachable is CANCELLED:
            return ProbeOutcome.cancelled(ip)
        if not reachable:
            return ProbeOutcome.not_found(ip)

        log.debug("Host answered ping, fingerprinting over HTTP.")
        result = await self.identify(ip, cancel_event)
        if result is CANCELLED:
            log.debug("Probe cancelled before fingerprinting finished.")
            return ProbeOutcome.cancelled(ip)
        if result is None:
            return ProbeOutcome.not_found(ip)
        log.info("Device identified", name=result.name, endpoint=result.endpoint)
        return ProbeOutcome.found(result)

    async def identify(self, ip: str, cancel_event: asyncio.Event) -> DiscoveredDevice | None | CancelledType:
        raise NotImplementedError

    async def _ping(self, ip: str, cancel_event: asyncio.Event) -> bool | CancelledType:
        try:
            return await race_cancellation(self.pinger.ping(ip, self.config.ping_timeout_seconds), cancel_event)
        except OSError as e:
            self.logger.debug("Ping failed", ip=ip, error=str(e))
            return False

    async def _fetch(self, url: str, cancel_event: asyncio.Event) -> HttpResponse | None | CancelledType:
        """GET ``url``; None on any transport failure or non-2xx status."""
        try:
            response = await race_cancellation(
                self.transport.get(url, self.config.http_timeout_seconds), cancel_event
            )
        except TransportError as e:
            self.logger.debug("HTTP probe failed", url=url, error=str(e), error_type=type(e).__name__)
            return None
        if response is CANCELLED:
            return CANCELLED
        if not response.ok:
            self.logger.debug("HTTP probe returned non-success status", url=url, status=response.status)
            return None
        return response


def _find_text(root: ET.Element, tag: str) -> str | None:
    if root.tag == tag:
        return root.text
    element = root.find(f".//{tag}")
    return element.text if element is not None else None


def parse_wled_led_count(root: ET.Element) -> int:
    """First positive integer among the ``ac``/``lc``/``count``/``leds`` descendants, else 0."""
    for tag in WLED_LED_COUNT_TAGS:
        for element in root.iter(tag):
            try:
                value = int((element.text or "").strip())
            except ValueError:
                continue
            if value > 0:
                return value
    return 0


def parse_wled_status_xml(body: str) -> int | None:
    """Return the LED count if ``body`` is a WLED ``/win`` document, else None."""
    try:
        root = ET.fromstring(body)
    except ET.ParseError:
        return None
    server_description = _find_text(root, "ds")
    if server_description is None or server_description.strip().lower() != WLED_SERVER_DESCRIPTION:
        return None
    return parse_wled_led_count(root)


def parse_wled_info_json(body: str) -> WledInfo | None:
    """Decode a ``/json/info`` body, returning it only if it describes a WLED controller."""
    try:
        info = WledInfo.model_validate_json(body)
    except (ValidationError, json.JSONDecodeError, ValueError):
        return None
    return info if info.looks_like_wled else None


def parse_wled_state_json(body: str) -> WledInfo | None:
    """Decode a combined ``/json`` body and return its ``info`` block if it describes a WLED controller."""
    try:
        state = WledState.model_validate_json(body)
    except (ValidationError, json.JSONDecodeError, ValueError):
        return None
    if state.info is None or not state.info.looks_like_wled:
        return None
    return state.info


def is_wled_web_ui(body: str) -> bool:
    return WLED_TITLE in body.lower()


class WledProbe(ProtocolProbe):
    """Identifies WLED controllers.

    ``/win`` is asked first. When it does not answer with a WLED document the
    root page is checked for the web UI title, then ``/json/info`` and ``/json``
    are decoded; each fallback can be switched off in ``ScannerConfig``.
    """

    name = "wled"

    async def identify(self, ip: str, cancel_event: asyncio.Event) -> WledDevice | None | CancelledType:
        response = await self._fetch(f"http://{ip}/win", cancel_event)
        if response is CANCELLED:
            return CANCELLED
        if response is not None:
            led_count = parse_wled_status_xml(response.text)
            if led_count is not None:
                return self._device(ip, response.text, led_count)
            self.logger.debug("/win answered without a WLED fingerprint", ip=ip, snippet=response.text[:200])

        if self.config.wled_web_ui_fallback:
            device = await self._identify_from_web_ui(ip, cancel_event)
            if device is not None:
                return device

        if not self.config.wled_json_fallback:
            return None
        for path, parse in (("/json/info", parse_wled_info_json), ("/json", parse_wled_state_json)):
            device = await self._identify_from_json(ip, path, parse, cancel_event)
            if device is not None:
                return device
        return None

    async def _identify_from_web_ui(self, ip: str, cancel_event: asyncio.Event) -> WledDevice | None | CancelledType:
        response = await self._fetch(f"http://{ip}/", cancel_event)
        if response is CANCELLED:
            return CANCELLED
        if response is None or not is_wled_web_ui(response.text):
            return None
        # The web UI page carries no LED count
        return self._device(ip, response.text, 0)

    async def _identify_from_json(
        self,
        ip: str,
        path: str,
        parse: Callable[[str], WledInfo | None],
        cancel_event: asyncio.Event,
    ) -> WledDevice | None | CancelledType:
        response = await self._fetch(f"http://{ip}{path}", cancel_event)
        if response is CANCELLED:
            return CANCELLED
        if response is None:
            return None
        info = parse(response.text)
        if info is None:
            return None
        return self._device(ip, response.text, info.led_count, firmware_version=info.ver)

    @staticmethod
    def _device(ip: str, body: str, led_count: int, firmware_version: str | None = None) -> WledDevice:
        return WledDevice(
            ip_address=ip,
            name=f"WLED ({ip})",
            endpoint=f"http://{ip}/",
            response_content=body,
            led_count=led_count,
            firmware_version=firmware_version,
        )


def is_pixelit_page(body: str, loose: bool = False) -> bool:
    lowered = body.lower()
    if PIXELIT_TITLE in lowered:
        return True
    return loose and "pixelit" in lowered


class PixelitProbe(ProtocolProbe):
    """Identifies PixelIt matrix displays by the title of their web UI.

    The candidate pages are tried in order; a page that answers without the
    fingerprint does not end the probe, the next page is still tried.
    """

    name = "pixelit"

    async def identify(self, ip: str, cancel_event: asyncio.Event) -> PixelitDevice | None | CancelledType:
        for path in PIXELIT_PATHS:
            url = f"http://{ip}{path}"
            response = await self._fetch(url, cancel_event)
            if response is CANCELLED:
                return CANCELLED
            if response is None:
                continue
            if is_pixelit_page(response.text, loose=self.config.pixelit_loose_match):
                return PixelitDevice(
                    ip_address=ip,
                    name=f"PixelIt ({ip})",
                    endpoint=url,
                    response_content=response.text,
                )
            self.logger.debug("Page answered without a PixelIt fingerprint", url=url, snippet=response.text[:200])
        return None
