import ipaddress

import pytest

from ipgeo.constants import MAX_TOTAL_IPS
from ipgeo.network import calculate_range, default_network, network_for, total_addresses


def test_ipv4_range():
    result = calculate_range(ipaddress.ip_network("192.168.1.0/24"))
    assert result.cidr == "192.168.1.0/24"
    assert result.start_ip == "192.168.1.0"
    assert result.end_ip == "192.168.1.255"
    assert result.total_ips == 256
    assert not result.saturated


def test_host_bits_are_ignored():
    network = ipaddress.ip_network("10.1.2.3/16", strict=False)
    result = calculate_range(network)
    assert result.cidr == "10.1.0.0/16"
    assert result.end_ip == "10.1.255.255"


def test_single_address_networks():
    v4 = calculate_range(ipaddress.ip_network("8.8.8.8/32"))
    assert v4.start_ip == v4.end_ip == "8.8.8.8"
    assert v4.total_ips == 1

    v6 = calculate_range(ipaddress.ip_network("2001:db8::1/128"))
    assert v6.start_ip == v6.end_ip == "2001:db8::1"
    assert v6.total_ips == 1


def test_whole_ipv4_space():
    result = calculate_range(ipaddress.ip_network("0.0.0.0/0"))
    assert result.start_ip == "0.0.0.0"
    assert result.end_ip == "255.255.255.255"
    assert result.total_ips == 2**32


def test_ipv6_slash_64_is_exact():
    result = calculate_range(ipaddress.ip_network("2001:db8::/64"))
    assert result.cidr == "2001:db8::/64"
    assert result.start_ip == "2001:db8::"
    assert result.end_ip == "2001:db8::ffff:ffff:ffff:ffff"
    assert result.total_ips == 2**64
    assert not result.saturated


def test_large_ipv6_network_saturates():
    result = calculate_range(ipaddress.ip_network("2001:db8::/48"))
    assert result.end_ip == "2001:db8:0:ffff:ffff:ffff:ffff:ffff"
    assert result.total_ips == MAX_TOTAL_IPS
    assert result.saturated


@pytest.mark.parametrize(
    "prefix_len,bits,expected",
    [
        (24, 32, (256, False)),
        (0, 32, (2**32, False)),
        (64, 128, (2**64, False)),
        (63, 128, (2**64, True)),
        (0, 128, (2**64, True)),
    ],
)
def test_total_addresses(prefix_len, bits, expected):
    assert total_addresses(prefix_len, bits) == expected


def test_total_addresses_rejects_bad_prefix():
    with pytest.raises(ValueError):
        total_addresses(33, 32)


def test_network_for_anchors_at_address():
    assert network_for(ipaddress.ip_address("203.0.113.77"), 24) == ipaddress.ip_network(
        "203.0.113.0/24"
    )


def test_default_network():
    assert default_network(ipaddress.ip_address("198.51.100.9")) == ipaddress.ip_network(
        "198.51.100.0/24"
    )
    assert default_network(ipaddress.ip_address("2001:db8:1:2:3::9")) == ipaddress.ip_network(
        "2001:db8:1:2::/64"
    )
