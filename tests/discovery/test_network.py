"""Tests for interface enumeration and the private-subnet gate."""

import socket
from unittest.mock import MagicMock, patch

import netifaces
import psutil
import pytest

from ledscout.discovery.network import (
    candidate_addresses,
    get_interface_ipv4s,
    get_linux_ipv4_addresses,
    get_local_ipv4_addresses,
    get_netifaces_ipv4_addresses,
    get_network_interfaces,
    is_private_address,
    is_private_subnet,
    subnet_prefix,
)


@pytest.mark.parametrize("subnet", [
    "10.0.0", "10.255.255", "172.16.0", "172.31.255", "192.168.0", "192.168.178", "169.254.1",
])
def test_private_subnets_accepted(subnet):
    assert is_private_subnet(subnet) is True


@pytest.mark.parametrize("subnet", [
    "8.8.8", "172.15.0", "172.32.0", "192.167.1", "169.253.0", "11.0.0", "100.64.0", "127.0.0",
])
def test_public_subnets_rejected(subnet):
    assert is_private_subnet(subnet) is False


@pytest.mark.parametrize("subnet", ["", "10.0", "10.0.0.1", "a.b.c", "10.0.256", "10.-1.0", None])
def test_malformed_subnets_fail_closed(subnet):
    assert is_private_subnet(subnet) is False


def test_is_private_address():
    assert is_private_address("192.168.1.10")
    assert is_private_address("172.20.3.4")
    assert is_private_address("169.254.10.10")
    assert not is_private_address("8.8.8.8")
    assert not is_private_address("127.0.0.1")
    assert not is_private_address("fe80::1")
    assert not is_private_address("not-an-ip")


def test_subnet_prefix():
    assert subnet_prefix("192.168.1.57") == "192.168.1"


def test_candidate_addresses_cover_full_sweep():
    candidates = list(candidate_addresses("10.0.0"))
    assert len(candidates) == 254
    assert candidates[0] == "10.0.0.1"
    assert candidates[-1] == "10.0.0.254"
    assert "10.0.0.0" not in candidates
    assert "10.0.0.255" not in candidates
    assert len(set(candidates)) == 254



def _stats(**up):
    return {name: MagicMock(isup=is_up) for name, is_up in up.items()}


def _ipv4(address, ptp=None):
    return MagicMock(family=socket.AF_INET, address=address, ptp=ptp)


def _link(address):
    return MagicMock(family=psutil.AF_LINK, address=address, ptp=None)


def test_get_network_interfaces_filters_down_and_excluded():
    addrs = {name: [] for name in ['lo', 'eth0', 'wlan0', 'tun0', 'ppp0', 'docker0', 'eth1']}
    with patch('psutil.net_if_addrs', return_value=addrs), \
         patch('psutil.net_if_stats', return_value=_stats(lo=True, eth0=True, wlan0=False, tun0=True, ppp0=True, docker0=True)):
        interfaces = get_network_interfaces()
    # eth1 has no stats at all and counts as down
    assert interfaces == ['eth0', 'docker0']


def test_get_interface_ipv4s_skips_point_to_point_and_other_families():
    addrs = {'eth0': [
        _link('aa:bb:cc:dd:ee:ff'),
        _ipv4('192.168.1.100'),
        _ipv4('10.8.0.2', ptp='10.8.0.1'),
        MagicMock(family=socket.AF_INET6, address='fe80::1234%eth0', ptp=None),
    ]}
    with patch('psutil.net_if_addrs', return_value=addrs):
        assert get_interface_ipv4s('eth0') == ['192.168.1.100']
        assert get_interface_ipv4s('eth9') == []


def test_windows_adapter_names_use_one_source_for_state_and_addresses():
    # netifaces names adapters by GUID on Windows while psutil uses friendly names
    addrs = {
        'Ethernet 2': [_ipv4('169.254.7.7')],
        'Wi-Fi': [_ipv4('192.168.1.20')],
        'Loopback Pseudo-Interface 1': [_ipv4('127.0.0.1')],
    }
    stats = {'Ethernet 2': MagicMock(isup=False), 'Wi-Fi': MagicMock(isup=True),
             'Loopback Pseudo-Interface 1': MagicMock(isup=True)}
    with patch('psutil.net_if_addrs', return_value=addrs), \
         patch('psutil.net_if_stats', return_value=stats), \
         patch('netifaces.interfaces', return_value=['{AAAA-DOWN}', '{BBBB-UP}']) as mock_netifaces:
        assert get_local_ipv4_addresses() == ['192.168.1.20']
    mock_netifaces.assert_not_called()


def test_get_local_ipv4_addresses_keeps_private_only():
    addrs = {'eth0': ['203.0.113.5'], 'wlan0': ['192.168.1.23']}
    with patch('ledscout.discovery.network.get_network_interfaces', return_value=['eth0', 'wlan0']), \
         patch('ledscout.discovery.network.get_interface_ipv4s', side_effect=lambda iface: addrs[iface]):
        assert get_local_ipv4_addresses() == ['192.168.1.23']


def test_get_local_ipv4_addresses_restricted_to_interface():
    addrs = {'eth0': ['10.0.0.4'], 'wlan0': ['192.168.1.23']}
    with patch('ledscout.discovery.network.get_network_interfaces', return_value=['eth0', 'wlan0']), \
         patch('ledscout.discovery.network.get_interface_ipv4s', side_effect=lambda iface: addrs[iface]):
        assert get_local_ipv4_addresses('wlan0') == ['192.168.1.23']
        assert get_local_ipv4_addresses('eth7') == []


def test_get_local_ipv4_addresses_netifaces_fallback():
    mock_addr_info = {
        'eth0': {netifaces.AF_INET: [{'addr': '192.168.1.100', 'netmask': '255.255.255.0'}]},
        'tun0': {netifaces.AF_INET: [{'addr': '10.8.0.2', 'peer': '10.8.0.1'}]},
        'wlan0': {netifaces.AF_INET: [{'addr': '10.8.0.3', 'peer': '10.8.0.1'}]},
    }
    with patch('psutil.net_if_addrs', side_effect=OSError("psutil error")), \
         patch('netifaces.interfaces', return_value=['lo', 'eth0', 'tun0', 'wlan0']), \
         patch('netifaces.ifaddresses', side_effect=lambda iface: mock_addr_info[iface]):
        assert get_local_ipv4_addresses() == ['192.168.1.100']


def test_get_netifaces_ipv4_addresses_error_handling():
    with patch('netifaces.interfaces', return_value=['eth9']), \
         patch('netifaces.ifaddresses', side_effect=ValueError("no such interface")):
        assert get_netifaces_ipv4_addresses() == []


def test_named_interface_without_any_enumeration():
    with patch('psutil.net_if_addrs', side_effect=OSError("psutil error")), \
         patch('netifaces.interfaces', side_effect=OSError("netifaces error")), \
         patch('subprocess.check_output') as mock_check_output:
        assert get_local_ipv4_addresses('eth0') == []
    mock_check_output.assert_not_called()


def test_get_local_ipv4_addresses_linux_fallback():
    output = (
        "1: lo    inet 127.0.0.1/8 scope host lo\n"
        "2: eth0    inet 192.168.1.10/24 brd 192.168.1.255 scope global eth0\n"
        "5: tun0    inet 10.8.0.2 peer 10.8.0.1/32 scope global tun0\n"
    )
    with patch('psutil.net_if_addrs', side_effect=OSError("psutil error")), \
         patch('netifaces.interfaces', side_effect=OSError("netifaces error")), \
         patch('platform.system', return_value="Linux"), \
         patch('subprocess.check_output', return_value=output):
        assert get_local_ipv4_addresses() == ['192.168.1.10']


def test_get_linux_ipv4_addresses_command_failure():
    with patch('subprocess.check_output', side_effect=FileNotFoundError("ip")):
        assert get_linux_ipv4_addresses() == []


def test_get_local_ipv4_addresses_windows_fallback():
    output = (
        "Ethernet adapter Ethernet:\n"
        "   IPv4 Address. . . . . . . . . . . : 192.168.0.42\n"
        "   Subnet Mask . . . . . . . . . . . : 255.255.255.0\n"
    )
    with patch('psutil.net_if_addrs', side_effect=OSError("psutil error")), \
         patch('netifaces.interfaces', side_effect=OSError("netifaces error")), \
         patch('platform.system', return_value="Windows"), \
         patch('subprocess.check_output', return_value=output):
        assert get_local_ipv4_addresses() == ['192.168.0.42']
