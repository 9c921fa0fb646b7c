"""Immutable, query-ready view of one refresh cycle."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType

from ipranges.addr import IPV4, IPV6, Address
from ipranges.dataset import PrefixRecord
from ipranges.trie import PrefixTrie


def normalize(name: str) -> str:
    return name.upper()


@dataclass(frozen=True)
class ServiceRanges:
    service: str
    ipv4_prefixes: tuple[str, ...]
    ipv6_prefixes: tuple[str, ...]

    @property
    def count(self) -> dict[str, int]:
        return {"ipv4": len(self.ipv4_prefixes), "ipv6": len(self.ipv6_prefixes)}

    def is_empty(self) -> bool:
        return not self.ipv4_prefixes and not self.ipv6_prefixes

    def as_dict(self, include_service: bool = True) -> dict:
        data = {
            "ipv4_prefixes": list(self.ipv4_prefixes),
            "ipv6_prefixes": list(self.ipv6_prefixes),
            "count": self.count,
        }
        if include_service:
            data = {"service": self.service, **data}
        return data


@dataclass(frozen=True)
class ServiceEntry:
    ranges: ServiceRanges
    # Region-restricted ranges keyed by normalized region name.
    by_region: Mapping[str, ServiceRanges]


@dataclass(frozen=True)
class Snapshot:
    sync_token: str
    create_date: str
    services: Mapping[str, ServiceEntry]
    regions: tuple[str, ...]
    membership: Mapping[int, PrefixTrie]
    record_count: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def service_names(self) -> list[str]:
        return sorted(entry.ranges.service for entry in self.services.values())

    def service(self, name: str, region: str | None = None) -> ServiceRanges | None:
        entry = self.services.get(normalize(name))
        if entry is None:
            return None
        if region:
            return entry.by_region.get(normalize(region))
        return entry.ranges

    def all_services(self, region: str | None = None) -> dict[str, ServiceRanges]:
        result = {}
        for entry in self.services.values():
            ranges = entry.by_region.get(normalize(region)) if region else entry.ranges
            if ranges is not None:
                result[entry.ranges.service] = ranges
        return result

    def search(self, address: Address) -> list[PrefixRecord]:
        return self.membership[address.family].search(address)


def _collect(service: str, records: list[PrefixRecord]) -> ServiceRanges:
    return ServiceRanges(
        service=service,
        ipv4_prefixes=tuple(dict.fromkeys(r.cidr for r in records if r.family == IPV4)),
        ipv6_prefixes=tuple(dict.fromkeys(r.cidr for r in records if r.family == IPV6)),
    )


def _index_service(service: str, records: list[PrefixRecord]) -> ServiceEntry:
    per_region: dict[str, list[PrefixRecord]] = {}
    for record in records:
        per_region.setdefault(normalize(record.region), []).append(record)
    return ServiceEntry(
        ranges=_collect(service, records),
        by_region=MappingProxyType(
            {key: _collect(service, group) for key, group in per_region.items()}
        ),
    )


def build_snapshot(
    sync_token: str,
    records: Iterable[PrefixRecord],
    create_date: str = "",
) -> Snapshot:
    """
    Build every index of a snapshot in one pass over the same record list.

    Services are grouped case-insensitively; the first casing seen is the
    one displayed. Identical records collapse into one.
    """
    if not isinstance(sync_token, str):
        raise ValueError(f"syncToken must be a string, got {type(sync_token).__name__}")
    unique = list(dict.fromkeys(records))

    grouped: dict[str, tuple[str, list[PrefixRecord]]] = {}
    membership = {IPV4: PrefixTrie(IPV4), IPV6: PrefixTrie(IPV6)}
    for record in unique:
        key = normalize(record.service)
        if key not in grouped:
            grouped[key] = (record.service, [])
        grouped[key][1].append(record)
        membership[record.family].insert(record.network, record)

    return Snapshot(
        sync_token=sync_token,
        create_date=create_date,
        services=MappingProxyType(
            {key: _index_service(name, group) for key, (name, group) in grouped.items()}
        ),
        regions=tuple(sorted({record.region for record in unique})),
        membership=MappingProxyType(membership),
        record_count=len(unique),
    )
