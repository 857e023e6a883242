"""ICMP echo reachability check used as a cheap pre-filter before HTTP probing.

Raw ICMP sockets need elevated privileges on most systems, so the check shells
out to the platform ``ping`` binary through an asyncio subprocess.
"""
import asyncio
import contextlib
import math
import platform
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)

# Extra time granted to the ping process beyond its own wait
_PING_PROCESS_GRACE = 0.5
_PING_KILL_GRACE = 0.5


class Pinger(Protocol):
    """Anything that can tell whether a host answers an ICMP echo."""

    async def ping(self, host: str, timeout: float) -> bool: ...


def build_ping_command(host: str, timeout: float, system: str | None = None) -> tuple[list[str], float]:
    """Return a single-echo ping command and a process timeout for the platform."""
    timeout = max(timeout, 0.1)
    system = (system or platform.system()).lower()
    if system == "windows":
        wait_ms = max(1, int(round(timeout * 1000)))
        cmd = ["ping", "-n", "1", "-w", str(wait_ms), host]
        effective = wait_ms / 1000.0
    elif system == "darwin":
        wait_ms = max(1, int(round(timeout * 1000)))
        cmd = ["ping", "-c", "1", "-W", str(wait_ms), host]
        effective = wait_ms / 1000.0
    else:
        wait_s = max(1, int(math.ceil(timeout)))
        cmd = ["ping", "-c", "1", "-W", str(wait_s), host]
        effective = float(wait_s)
    return cmd, effective + _PING_PROCESS_GRACE


class SubprocessPinger:
    """Pings through the system ``ping`` executable."""

    async def ping(self, host: str, timeout: float) -> bool:
        cmd, proc_timeout = build_ping_command(host, timeout)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.warning("Could not start ping process", host=host, error=str(e))
            return False

        try:
            await asyncio.wait_for(proc.wait(), proc_timeout)
        except asyncio.TimeoutError:
            _kill(proc)
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(proc.wait(), _PING_KILL_GRACE)
            return False
        except asyncio.CancelledError:
            # Do not leave orphaned ping processes behind a cancelled scan
            _kill(proc)
            raise
        return proc.returncode == 0


def _kill(proc: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        proc.kill()
