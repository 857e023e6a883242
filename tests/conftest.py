"""Shared fakes for exercising the scanner without touching the network."""
import asyncio

import pytest

from ledscout.config import Config, ScannerConfig
from ledscout.discovery.transport import HttpResponse
from ledscout.exceptions import TransportError, TransportTimeoutError


class FakeNetwork:
    """
    In-memory stand-in for both the pinger and the HTTP transport.

    ``pages`` maps full URLs to ``(status, body)``. Hosts answer ping if they
    serve any page or are listed in ``reachable``. URLs listed in ``timeouts``
    raise TransportTimeoutError; unknown URLs raise TransportError like a
    refused connection.
    """

    def __init__(self, pages=None, reachable=None, timeouts=(), ping_delay=0.0, http_delay=0.0):
        self.pages = dict(pages or {})
        self.reachable = set(reachable or ())
        for url in self.pages:
            self.reachable.add(url.split("/")[2])
        self.timeouts = set(timeouts)
        self.ping_delay = ping_delay
        self.http_delay = http_delay
        self.ping_calls: list[str] = []
        self.get_calls: list[str] = []
        self.get_call_times: list[float] = []
        self.closed = False

    async def ping(self, host: str, timeout: float) -> bool:
        self.ping_calls.append(host)
        if self.ping_delay:
            await asyncio.sleep(self.ping_delay)
        return host in self.reachable

    async def get(self, url: str, timeout: float) -> HttpResponse:
        self.get_calls.append(url)
        self.get_call_times.append(asyncio.get_running_loop().time())
        if self.http_delay:
            await asyncio.sleep(self.http_delay)
        if url in self.timeouts:
            raise TransportTimeoutError(f"GET {url} timed out", url=url)
        if url not in self.pages:
            raise TransportError(f"GET {url} failed: connection refused", url=url)
        status, body = self.pages[url]
        return HttpResponse(url=url, status=status, text=body)

    async def close(self) -> None:
        self.closed = True

    @property
    def network_calls(self) -> int:
        return len(self.ping_calls) + len(self.get_calls)


WLED_WIN_XML = "<?xml version=\"1.0\" ?><vs><ac>128</ac><cl>255</cl><cl>160</cl><cl>0</cl><ds>WLED</ds></vs>"
PIXELIT_HTML = (
    "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
    "<title>PixelIt WebUI</title></head><body><div id=\"app\"></div></body></html>"
)


@pytest.fixture
def fake_network():
    return FakeNetwork()


@pytest.fixture
def app_config():
    return Config(scanner=ScannerConfig())


def make_config(**scanner_overrides) -> Config:
    return Config(scanner=ScannerConfig(**scanner_overrides))
