import pytest

from ipranges.addr import IPV4, IPV6, contains, parse_address, parse_cidr
from ipranges.errors import MalformedAddress, MalformedCidr


def test_parse_ipv4_cidr():
    cidr = parse_cidr("1.2.3.0/24")
    assert cidr.family == IPV4
    assert cidr.prefix_length == 24
    assert cidr.address == 0x01020300
    assert str(cidr) == "1.2.3.0/24"


def test_parse_ipv6_cidr_with_compression():
    cidr = parse_cidr("2600:1f18::/33")
    assert cidr.family == IPV6
    assert cidr.prefix_length == 33
    assert cidr.address == 0x26001F18 << 96


def test_parse_cidr_keeps_host_bits():
    cidr = parse_cidr("10.1.2.3/8")
    assert cidr.address == 0x0A010203
    assert cidr.network == 0x0A000000
    assert str(cidr) == "10.0.0.0/8"


@pytest.mark.parametrize(
    "text",
    [
        "1.2.3.0",
        "1.2.3.0/33",
        "1.2.3.0/-1",
        "1.2.3.0/",
        "1.2.3.0/2a",
        "/24",
        "1.2.3/24",
        "256.0.0.0/8",
        "2600::/129",
        "2600:::1/64",
        "1:2:3:4:5:6:7:8:9/64",
        "fe80::1%eth0/64",
        "",
    ],
)
def test_parse_cidr_rejects_malformed(text):
    with pytest.raises(MalformedCidr):
        parse_cidr(text)


def test_parse_cidr_rejects_non_string():
    with pytest.raises(MalformedCidr):
        parse_cidr(None)


def test_parse_cidr_prefix_length_bounds():
    assert parse_cidr("0.0.0.0/0").prefix_length == 0
    assert parse_cidr("1.2.3.4/32").prefix_length == 32
    assert parse_cidr("::/0").prefix_length == 0
    assert parse_cidr("::1/128").prefix_length == 128


def test_parse_address():
    address = parse_address("1.2.3.5")
    assert address.family == IPV4
    assert address.packed == bytes([1, 2, 3, 5])
    assert str(address) == "1.2.3.5"


def test_parse_ipv6_address_expands_zero_run():
    address = parse_address("2001:db8::1")
    assert address.family == IPV6
    assert address.packed == bytes.fromhex("20010db8000000000000000000000001")
    assert parse_address("::").value == 0
    assert parse_address("::ffff").value == 0xFFFF


@pytest.mark.parametrize(
    "text", ["", "1.2.3", "1.2.3.4.5", "999.1.1.1", "2001:db8::1::2", "gggg::1", "fe80::1%eth0"]
)
def test_parse_address_rejects_malformed(text):
    with pytest.raises(MalformedAddress):
        parse_address(text)


def test_contains_ipv4():
    cidr = parse_cidr("1.2.3.0/24")
    assert contains(cidr, parse_address("1.2.3.0"))
    assert contains(cidr, parse_address("1.2.3.255"))
    assert not contains(cidr, parse_address("1.2.4.0"))


def test_contains_partial_byte_mask():
    cidr = parse_cidr("10.0.0.0/13")
    assert contains(cidr, parse_address("10.7.255.255"))
    assert not contains(cidr, parse_address("10.8.0.0"))

    cidr = parse_cidr("2600:1f00::/27")
    assert contains(cidr, parse_address("2600:1f1f:ffff::1"))
    assert not contains(cidr, parse_address("2600:1f20::"))


def test_contains_ignores_host_bits_of_both_sides():
    for host_bits in (0, 1, 0x7F, 0x1FF, 0x7FFFF):
        cidr = parse_cidr(f"{ipv4_text(0xC0A80000 | host_bits)}/13")
        assert contains(cidr, parse_address("192.168.0.1"))
        assert contains(cidr, parse_address(ipv4_text(0xC0A80000 | (host_bits ^ 0x5A5A5))))
        assert not contains(cidr, parse_address("192.176.0.0"))



def test_contains_ignores_ipv6_host_bits_of_both_sides():
    cidr = parse_cidr("2600:1f1f:dead::beef/27")
    assert cidr.network == parse_address("2600:1f00::").value
    for address in ("2600:1f00::", "2600:1f1f:ffff:ffff:ffff:ffff:ffff:ffff", "2600:1f05:1234::5678"):
        assert contains(cidr, parse_address(address))
        assert contains(parse_cidr("2600:1f00::/27"), parse_address(address))
    for address in ("2600:1f20::", "2600:1eff:ffff::1", "2601:1f00::"):
        assert not contains(cidr, parse_address(address))

    cidr = parse_cidr("2600:1f18:7fff:abcd::1/33")
    assert contains(cidr, parse_address("2600:1f18:7fff:ffff::1"))
    assert contains(cidr, parse_address("2600:1f18::"))
    assert not contains(cidr, parse_address("2600:1f18:8000::"))


def ipv4_text(value: int) -> str:
    return ".".join(str((value >> shift) & 0xFF) for shift in (24, 16, 8, 0))


def test_contains_zero_and_full_length():
    assert contains(parse_cidr("0.0.0.0/0"), parse_address("203.0.113.9"))
    assert contains(parse_cidr("::/0"), parse_address("2001:db8::"))
    assert contains(parse_cidr("1.2.3.4/32"), parse_address("1.2.3.4"))
    assert not contains(parse_cidr("1.2.3.4/32"), parse_address("1.2.3.5"))


def test_contains_never_matches_across_families():
    assert not contains(parse_cidr("::/0"), parse_address("1.2.3.4"))
    assert not contains(parse_cidr("0.0.0.0/0"), parse_address("::1"))
