"""Local interface enumeration and the private-subnet gate for ledscout."""

import ipaddress
import platform
import re
import socket
import subprocess
from collections.abc import Iterator
from typing import List

import netifaces
import psutil
import structlog

logger = structlog.get_logger(__name__)

# Interface name prefixes for loopback, tunnel and point-to-point links
EXCLUDED_INTERFACE_PREFIXES = ("lo", "loopback", "tun", "tap", "utun", "ppp", "wg", "gif", "stf", "ipsec")

PRIVATE_NETWORKS = (
    ipaddress.IPv4Network("10.0.0.0/8"),
    ipaddress.IPv4Network("172.16.0.0/12"),
    ipaddress.IPv4Network("192.168.0.0/16"),
    ipaddress.IPv4Network("169.254.0.0/16"), # Link-local
)

FIRST_HOST_OCTET = 1
LAST_HOST_OCTET = 254


def is_private_address(ip: str) -> bool:
    """Return True if ``ip`` is an IPv4 address inside a private or link-local range."""
    try:
        address = ipaddress.IPv4Address(ip.strip())
    except (ipaddress.AddressValueError, AttributeError):
        return False
    return any(address in network for network in PRIVATE_NETWORKS)


def is_private_subnet(subnet: str) -> bool:
    """Return True if the /24 identified by the prefix ``"a.b.c"`` is private.

    Fails closed: anything malformed, or any error during the check, is
    reported as not private.
    """
    try:
        parts = subnet.split(".")
        if len(parts) != 3:
            return False
        network = ipaddress.IPv4Network(f"{subnet}.0/24")
        return any(network.subnet_of(private) for private in PRIVATE_NETWORKS)
    except Exception as e:
        logger.warning("Subnet validation failed, treating as not private", subnet=subnet, error=str(e))
        return False


def subnet_prefix(ip: str) -> str:
    """Return the first three octets of a dotted-quad address."""
    return ".".join(ip.split(".")[:3])


def candidate_addresses(subnet: str) -> Iterator[str]:
    """Yield every host address of the /24 behind ``subnet``, .1 through .254."""
    for octet in range(FIRST_HOST_OCTET, LAST_HOST_OCTET + 1):
        yield f"{subnet}.{octet}"


def _is_excluded_interface(iface: str) -> bool:
    return iface.lower().startswith(EXCLUDED_INTERFACE_PREFIXES)


def get_windows_ipv4_addresses() -> List[str]:
    """Get IPv4 addresses on Windows by parsing ``ipconfig``.

    Returns:
        List[str]: IPv4 addresses in the order ipconfig reports them.
    """
    try:
        output = subprocess.check_output(["ipconfig"], universal_newlines=True)
        return re.findall(r"IPv4[^:]*:\s*([\d.]+)", output)
    except (subprocess.SubprocessError, OSError) as e:
        logger.error("Failed to get Windows addresses", error=str(e))
        return []


def get_linux_ipv4_addresses() -> List[str]:
    """Get IPv4 addresses on Linux using the ip command.

    Returns:
        List[str]: IPv4 addresses of non-excluded interfaces that are UP.
    """
    try:
        output = subprocess.check_output(
            ["ip", "-4", "-o", "addr", "show", "up"],
            universal_newlines=True
        )
        addresses = []
        for line in output.split('\n'):
            # e.g. "2: eth0    inet 192.168.1.10/24 brd 192.168.1.255 scope global eth0"
            parts = line.split()
            if len(parts) < 4 or parts[2] != "inet":
                continue
            if _is_excluded_interface(parts[1]) or "peer" in parts:
                continue
            addresses.append(parts[3].split("/")[0])
        return addresses
    except (subprocess.SubprocessError, OSError) as e:
        logger.error("Failed to get Linux addresses", error=str(e))
        return []


def get_network_interfaces(skip_excluded: bool = True) -> List[str]:
    """Get interface names that are operationally up.

    Names, addresses and up-state all come from psutil so they agree on every
    platform (netifaces reports adapter GUIDs on Windows, psutil friendly names).
    An interface psutil has no stats for is treated as down.

    Args:
        skip_excluded: Whether to drop loopback, tunnel and point-to-point links.

    Returns:
        List[str]: Interface names in psutil order.
    """
    stats = psutil.net_if_stats()
    up = []
    for iface in psutil.net_if_addrs():
        if skip_excluded and _is_excluded_interface(iface):
            continue
        iface_stats = stats.get(iface)
        if iface_stats is None or not iface_stats.isup:
            continue
        up.append(iface)
    return up


def get_interface_ipv4s(interface: str) -> List[str]:
    """Get the IPv4 unicast addresses psutil reports for ``interface``.

    Point-to-point addresses (psutil reports a ``ptp`` peer for them) are skipped.
    """
    addresses = []
    for addr in psutil.net_if_addrs().get(interface, []):
        if addr.family == socket.AF_INET and addr.ptp is None:
            addresses.append(addr.address)
    return addresses


def get_netifaces_ipv4_addresses(interface: str | None = None) -> List[str]:
    """Get IPv4 addresses through netifaces, which knows nothing about up-state.

    Only used when psutil enumeration fails. Point-to-point addresses
    (netifaces reports a ``peer`` for them) are skipped.
    """
    addresses = []
    for iface in netifaces.interfaces():
        if interface is not None and iface != interface:
            continue
        if _is_excluded_interface(iface):
            continue
        try:
            addr_info = netifaces.ifaddresses(iface)
        except (ValueError, KeyError, OSError) as e:
            logger.error("Failed to get addresses for interface", interface=iface, error=str(e))
            continue
        for addr in addr_info.get(netifaces.AF_INET, []):
            if 'addr' in addr and 'peer' not in addr:
                addresses.append(addr['addr'])
    return addresses


def _enumerate_ipv4_candidates(interface: str | None) -> List[str]:
    try:
        interfaces = get_network_interfaces()
        if interface is not None:
            interfaces = [iface for iface in interfaces if iface == interface]
        return [ip for iface in interfaces for ip in get_interface_ipv4s(iface)]
    except Exception as e:
        logger.warning("psutil interface enumeration failed, trying netifaces", error=str(e))

    try:
        return get_netifaces_ipv4_addresses(interface)
    except Exception as e:
        if interface is not None:
            logger.error("Interface discovery failed for a named interface", interface=interface, error=str(e))
            return []
        logger.warning("netifaces discovery failed, trying platform-specific fallback", error=str(e))

    if platform.system() == "Windows":
        return get_windows_ipv4_addresses()
    return get_linux_ipv4_addresses()


def get_local_ipv4_addresses(interface: str | None = None) -> List[str]:
    """List private IPv4 addresses of usable local interfaces.

    psutil is consulted first, then netifaces, then the platform's own
    ``ipconfig`` / ``ip`` output.

    Args:
        interface: Restrict the result to this interface name.

    Returns:
        List[str]: Possibly empty; empty means no usable local interface.
    """
    candidates = _enumerate_ipv4_candidates(interface)
    addresses = [ip for ip in candidates if is_private_address(ip)]
    logger.debug("Local IPv4 addresses enumerated", addresses=addresses, interface=interface)
    return addresses
