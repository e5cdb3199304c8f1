"""Pick the interface to capture on.

Prefers the first interface holding an RFC 1918 address. Otherwise falls
back to the last interface seen with any non-loopback IPv4 address. On
multi-homed hosts this heuristic can pick the wrong interface; pass an
explicit name (config `interface` or `--interface`) in that case.
"""
from __future__ import annotations

import ipaddress
import logging
import socket
from typing import Iterable, List, Optional, Sequence, Tuple

import psutil

from reporter.errors import NoInterfaceFound

logger = logging.getLogger(__name__)

PRIVATE_NETWORKS = (
    ipaddress.IPv4Network('10.0.0.0/8'),
    ipaddress.IPv4Network('172.16.0.0/12'),
    ipaddress.IPv4Network('192.168.0.0/16'),
)

InterfaceAddrs = Tuple[str, Sequence[str]]


def available_interfaces() -> List[InterfaceAddrs]:
    """Return (name, [ipv4 addresses]) for every interface the OS reports."""
    result: List[InterfaceAddrs] = []
    for name, addrs in psutil.net_if_addrs().items():
        ipv4 = [a.address for a in addrs if a.family == socket.AF_INET and a.address]
        result.append((name, ipv4))
    return result


def _parse_ipv4(address: str) -> Optional[ipaddress.IPv4Address]:
    try:
        ip = ipaddress.ip_address(address.split('/')[0].split('%')[0])
    except ValueError:
        return None
    if not isinstance(ip, ipaddress.IPv4Address):
        return None
    return ip


def is_private(ip: ipaddress.IPv4Address) -> bool:
    return any(ip in net for net in PRIVATE_NETWORKS)


def select_interface(interfaces: Optional[Iterable[InterfaceAddrs]] = None) -> str:
    if interfaces is None:
        interfaces = available_interfaces()

    fallback = None
    for name, addresses in interfaces:
        for address in addresses:
            ip = _parse_ipv4(address)
            if ip is None or ip.is_loopback:
                continue
            if is_private(ip):
                logger.info("Selected interface %s (private address %s)", name, ip)
                return name
            fallback = name

    if fallback is None:
        raise NoInterfaceFound('no interface with a non-loopback IPv4 address')
    logger.info("No private address found; falling back to interface %s", fallback)
    return fallback
