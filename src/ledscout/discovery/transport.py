"""
HTTP transport used by the device probes.

The transport is injected into each scanner rather than kept as module state,
so tests can swap in a fake without touching the network.
"""
from typing import Protocol

import aiohttp
import structlog

from ..config import HttpClientConfig
from ..exceptions import TransportError, TransportTimeoutError
from ..models.common import BasePydanticModel

logger = structlog.get_logger(__name__)


class HttpResponse(BasePydanticModel):
    url: str
    status: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class HttpTransport(Protocol):
    """Minimal GET-only client interface the probes depend on."""

    async def get(self, url: str, timeout: float) -> HttpResponse: ...

    async def close(self) -> None: ...


class AiohttpTransport:
    """
    HttpTransport backed by one long-lived aiohttp.ClientSession.

    The session is created lazily on first use and reused by every probe of
    every scan that shares this transport.
    """

    def __init__(self, http_config: HttpClientConfig | None = None, session: aiohttp.ClientSession | None = None):
        self.http_config = http_config or HttpClientConfig()
        self._session = session
        self._owns_session = session is None
        self.logger = logger.bind(transport="aiohttp")

    def _default_headers(self) -> dict[str, str]:
        from .. import __version__
        return {"User-Agent": self.http_config.user_agent or f"ledscout/{__version__}"}

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self.logger.debug("Creating aiohttp session for probing.")
            connector = aiohttp.TCPConnector(
                limit=self.http_config.connection_pool_total_limit,
                limit_per_host=self.http_config.connection_pool_per_host_limit,
            )
            self._session = aiohttp.ClientSession(connector=connector, headers=self._default_headers())
            self._owns_session = True
        return self._session

    async def get(self, url: str, timeout: float) -> HttpResponse:
        session = await self._get_session()
        client_timeout = aiohttp.ClientTimeout(total=timeout)
        try:
            async with session.get(url, timeout=client_timeout, allow_redirects=True) as response:
                text = await response.text(errors="replace")
                return HttpResponse(url=url, status=response.status, text=text)
        except TimeoutError as e: # Also catches asyncio.TimeoutError and aiohttp's timeout errors
            raise TransportTimeoutError(f"GET {url} timed out after {timeout}s", url=url) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"GET {url} failed: {e}", url=url) from e
        except UnicodeDecodeError as e:
            raise TransportError(f"GET {url} returned an undecodable body: {e}", url=url) from e

    async def close(self) -> None:
        """Close the session if this transport created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
            self.logger.debug("aiohttp session closed.")
        self._session = None
