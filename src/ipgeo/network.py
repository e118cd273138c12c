"""Network range arithmetic for IPv4 and IPv6 networks."""

from __future__ import annotations

import ipaddress
import logging

from .constants import DEFAULT_PREFIX_V4, DEFAULT_PREFIX_V6, MAX_TOTAL_IPS
from .models import IPAddress, IPNetwork, NetworkRange

logger = logging.getLogger(__name__)


def total_addresses(prefix_len: int, bits: int) -> tuple[int, bool]:
    """
    Number of addresses in a network of the given prefix length.

    Counts above MAX_TOTAL_IPS are saturated to it rather than wrapped.

    Returns:
        (count, saturated)
    """
    if not 0 <= prefix_len <= bits:
        raise ValueError(f"Prefix length {prefix_len} out of range for {bits}-bit address")
    count = 1 << (bits - prefix_len)
    if count > MAX_TOTAL_IPS:
        return MAX_TOTAL_IPS, True
    return count, False


def calculate_range(network: IPNetwork) -> NetworkRange:
    """Start, end and size of a network; host bits in the address are ignored."""
    bits = network.max_prefixlen
    mask = int(network.netmask)
    start = int(network.network_address) & mask
    end = start | (~mask & ((1 << bits) - 1))

    address_cls = ipaddress.IPv4Address if bits == 32 else ipaddress.IPv6Address
    start_ip = address_cls(start)
    end_ip = address_cls(end)

    total, saturated = total_addresses(network.prefixlen, bits)
    if saturated:
        logger.debug(f"Address count for {network} saturated at {MAX_TOTAL_IPS}")

    return NetworkRange(
        cidr=f"{start_ip}/{network.prefixlen}",
        start_ip=str(start_ip),
        end_ip=str(end_ip),
        total_ips=total,
        saturated=saturated,
    )


def network_for(ip: IPAddress, prefix_len: int) -> IPNetwork:
    """The network of the given prefix length that contains ``ip``."""
    return ipaddress.ip_network(f"{ip}/{prefix_len}", strict=False)


def default_network(
    ip: IPAddress,
    v4_prefix: int = DEFAULT_PREFIX_V4,
    v6_prefix: int = DEFAULT_PREFIX_V6,
) -> IPNetwork:
    """
    Fallback network used when no source reports one.

    It is anchored at the queried address, so it is an approximation rather
    than the registered netblock.
    """
    prefix = v4_prefix if ip.version == 4 else v6_prefix
    return network_for(ip, prefix)
