"""
=============================================================================
LAN ADDRESS DISCOVERY
=============================================================================

The server binds 0.0.0.0, which is useless to show a user. This module
finds the address other devices on the same WiFi should type instead.

=============================================================================
HEURISTIC ORDER
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  1. Wireless interfaces the kernel knows about (/proc/net/wireless) │
    │  2. Interfaces whose name looks like WiFi (wlan0, wlp3s0, wifi0)    │
    │  3. Any other interface                                             │
    │  4. Source address of the default route (UDP connect, no traffic)  │
    └─────────────────────────────────────────────────────────────────────┘

Every step only accepts a private IPv4 address (10/8, 172.16/12,
192.168/16): loopback, link-local and public addresses are skipped. The
first step that yields one wins.

Steps 1-3 use Linux interfaces (/proc, /sys, SIOCGIFADDR). On other
platforms they find nothing and step 4 does the work.

=============================================================================
"""

import os
import sys
import socket
import struct
import logging
import platform
import ipaddress
from typing import List, Optional, Tuple

from .exceptions import AddressNotFoundError


logger = logging.getLogger(__name__)

PRIVATE_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
)

WIFI_NAME_HINTS = ("wlan", "wifi", "wl")

PROC_WIRELESS = "/proc/net/wireless"
SYS_NET = "/sys/class/net"

# ioctl request: get interface address (linux/sockios.h)
SIOCGIFADDR = 0x8915

# Any routable address works; connect() on UDP sends nothing.
ROUTE_PROBE_ADDRESS = ("8.8.8.8", 80)


def is_private_ipv4(address: str) -> bool:
    """True for 10.0.0.0/8, 172.16.0.0/12 and 192.168.0.0/16 only."""
    try:
        ip = ipaddress.IPv4Address(address)
    except ValueError:
        return False
    return any(ip in network for network in PRIVATE_NETWORKS)


# =============================================================================
# PLATFORM PROBES
# =============================================================================

def _wireless_interfaces() -> List[str]:
    """
    Interface names listed in /proc/net/wireless.

    The file has two header lines, then one "  wlan0: 0000 ..." per interface.
    """
    try:
        with open(PROC_WIRELESS) as f:
            lines = f.readlines()[2:]
    except OSError as e:
        logger.debug(f"No wireless interface list: {e}")
        return []

    return [line.split(":", 1)[0].strip() for line in lines if ":" in line]


def _interface_ipv4(name: str) -> Optional[str]:
    """IPv4 address of one interface via SIOCGIFADDR, None if it has none."""
    import fcntl  # Linux only, see _interface_addresses

    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        try:
            packed = fcntl.ioctl(s.fileno(), SIOCGIFADDR, struct.pack("256s", name.encode()[:15]))
        except OSError:
            return None
    return socket.inet_ntoa(packed[20:24])


def _interface_addresses() -> List[Tuple[str, str]]:
    """(interface name, IPv4 address) for every interface that has one."""
    if not sys.platform.startswith("linux"):
        return []

    try:
        names = [name for _, name in socket.if_nameindex()]
    except OSError as e:
        logger.debug(f"Cannot enumerate interfaces: {e}")
        return []

    addresses = []
    for name in names:
        address = _interface_ipv4(name)
        if address:
            addresses.append((name, address))
    return addresses


def _operstate(name: str) -> str:
    """Kernel operational state of an interface ("up", "down", "unknown"...)."""
    try:
        with open(os.path.join(SYS_NET, name, "operstate")) as f:
            return f.read().strip()
    except OSError:
        return "unknown"


def _default_route_address() -> Optional[str]:
    """Local address the OS would use to reach the internet."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(ROUTE_PROBE_ADDRESS)
            return s.getsockname()[0]
    except OSError as e:
        logger.debug(f"Default route lookup failed: {e}")
        return None


def _looks_like_wifi(name: str) -> bool:
    lowered = name.lower()
    return any(hint in lowered for hint in WIFI_NAME_HINTS)


def _first_private(addresses: List[Tuple[str, str]], names=None) -> Optional[str]:
    for name, address in addresses:
        if names is not None and name not in names:
            continue
        if is_private_ipv4(address):
            return address
    return None


# =============================================================================
# PUBLIC API
# =============================================================================

def get_wifi_ip_address() -> str:
    """
    Best guess at this device's address on the local WiFi.

    Raises:
        AddressNotFoundError: No private IPv4 address found (code "NOT_FOUND").
    """
    addresses = _interface_addresses()

    wireless = _wireless_interfaces()
    address = _first_private(addresses, set(wireless))
    if address:
        logger.debug(f"Using wireless interface address {address}")
        return address
    logger.debug("No address on a kernel-reported wireless interface")

    address = _first_private(addresses, {name for name, _ in addresses if _looks_like_wifi(name)})
    if address:
        logger.debug(f"Using WiFi-named interface address {address}")
        return address
    logger.debug("No address on a WiFi-named interface")

    address = _first_private(addresses)
    if address:
        logger.debug(f"Using interface address {address}")
        return address
    logger.debug("No private address on any interface")

    address = _default_route_address()
    if address and is_private_ipv4(address):
        logger.debug(f"Using default route address {address}")
        return address

    raise AddressNotFoundError()


def is_wifi_connected() -> bool:
    """True if a wireless interface is up and has a private IPv4 address."""
    addresses = dict(_interface_addresses())
    for name in _wireless_interfaces():
        if _operstate(name) == "up" and is_private_ipv4(addresses.get(name, "")):
            return True
    return False


def get_network_info() -> dict:
    """
    Snapshot for a status screen.

    Returns:
        {
            "wifi_ip": "192.168.1.23" or None,
            "all_ips": ["192.168.1.23 (wlan0)", "172.17.0.1 (docker0)"],
            "is_wifi_connected": True,
            "hostname": "pixel-7",
            "platform": "Linux-6.1.0-aarch64",
        }
    """
    try:
        wifi_ip = get_wifi_ip_address()
    except AddressNotFoundError:
        wifi_ip = None

    return {
        "wifi_ip": wifi_ip,
        "all_ips": [
            f"{address} ({name})"
            for name, address in _interface_addresses()
            if not ipaddress.IPv4Address(address).is_loopback
        ],
        "is_wifi_connected": is_wifi_connected(),
        "hostname": socket.gethostname(),
        "platform": platform.platform(),
    }
