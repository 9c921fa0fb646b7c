"""Binary radix trie answering "which prefixes contain this address"."""

from collections.abc import Iterator
from typing import Any

from ipranges.addr import WIDTHS, Address, Cidr, bit_at


class _Node:
    __slots__ = ("children", "entries")

    def __init__(self) -> None:
        self.children: list[_Node | None] = [None, None]
        self.entries: list[Any] = []


class PrefixTrie:
    """
    One trie per address family. A prefix of length N lives N levels below
    the root, so a lookup visits at most 32 (IPv4) or 128 (IPv6) nodes
    regardless of how many prefixes are stored.
    """

    def __init__(self, family: int) -> None:
        self.family = family
        self.width = WIDTHS[family]
        self._root = _Node()
        self._size = 0

    def insert(self, cidr: Cidr, value: Any) -> None:
        if cidr.family != self.family:
            raise ValueError(f"IPv{cidr.family} prefix inserted into IPv{self.family} trie")
        node = self._root
        for index in range(cidr.prefix_length):
            bit = bit_at(cidr.address, index, self.width)
            child = node.children[bit]
            if child is None:
                child = node.children[bit] = _Node()
            node = child
        node.entries.append(value)
        self._size += 1

    def search(self, address: Address) -> list[Any]:
        """Return values of every prefix containing `address`, shortest prefix first."""
        if address.family != self.family:
            return []
        node = self._root
        matches = list(node.entries)
        for index in range(self.width):
            node = node.children[bit_at(address.value, index, self.width)]
            if node is None:
                break
            matches.extend(node.entries)
        return matches

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[Any]:
        stack = [self._root]
        while stack:
            node = stack.pop()
            yield from node.entries
            stack.extend(child for child in reversed(node.children) if child is not None)
