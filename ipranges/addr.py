"""IPv4/IPv6 address and CIDR arithmetic on fixed-width integers."""

import ipaddress
from dataclasses import dataclass

from ipranges.errors import MalformedAddress, MalformedCidr

IPV4 = 4
IPV6 = 6
WIDTHS = {IPV4: 32, IPV6: 128}


def prefix_mask(prefix_length: int, width: int) -> int:
    return ((1 << prefix_length) - 1) << (width - prefix_length)


def bit_at(value: int, index: int, width: int) -> int:
    """Return bit `index` of `value`, counting from the most significant bit."""
    return (value >> (width - 1 - index)) & 1


@dataclass(frozen=True)
class Address:
    value: int
    family: int

    @property
    def width(self) -> int:
        return WIDTHS[self.family]

    @property
    def packed(self) -> bytes:
        return self.value.to_bytes(self.width // 8, "big")

    def __str__(self) -> str:
        if self.family == IPV4:
            return str(ipaddress.IPv4Address(self.value))
        return str(ipaddress.IPv6Address(self.value))


@dataclass(frozen=True)
class Cidr:
    # Base address as written; host bits may be set and are ignored by contains().
    address: int
    prefix_length: int
    family: int

    @property
    def width(self) -> int:
        return WIDTHS[self.family]

    @property
    def mask(self) -> int:
        return prefix_mask(self.prefix_length, self.width)

    @property
    def network(self) -> int:
        return self.address & self.mask

    def contains(self, address: Address) -> bool:
        return contains(self, address)

    def __str__(self) -> str:
        return f"{Address(self.network, self.family)}/{self.prefix_length}"


def _parse_literal(text: str) -> tuple[int, int] | None:
    try:
        ip = ipaddress.ip_address(text)
    except ValueError:
        return None
    if isinstance(ip, ipaddress.IPv6Address) and ip.scope_id is not None:
        return None
    return int(ip), ip.version


def parse_address(text: str) -> Address:
    if not isinstance(text, str):
        raise MalformedAddress(f"Invalid IP address: {text!r}")
    parsed = _parse_literal(text)
    if parsed is None:
        raise MalformedAddress(f"Invalid IP address: {text!r}")
    value, family = parsed
    return Address(value, family)


def parse_cidr(text: str) -> Cidr:
    if not isinstance(text, str) or "/" not in text:
        raise MalformedCidr(f"Missing prefix length in CIDR: {text!r}")
    address_text, _, length_text = text.partition("/")
    parsed = _parse_literal(address_text)
    if parsed is None:
        raise MalformedCidr(f"Invalid address in CIDR: {text!r}")
    value, family = parsed
    if not (length_text.isascii() and length_text.isdigit()):
        raise MalformedCidr(f"Invalid prefix length in CIDR: {text!r}")
    prefix_length = int(length_text)
    if prefix_length > WIDTHS[family]:
        raise MalformedCidr(
            f"Prefix length {prefix_length} out of range for IPv{family}: {text!r}"
        )
    return Cidr(value, prefix_length, family)


def contains(cidr: Cidr, address: Address) -> bool:
    if cidr.family != address.family:
        return False
    return (cidr.address ^ address.value) & cidr.mask == 0
