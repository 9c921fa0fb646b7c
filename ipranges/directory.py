from datetime import datetime, timezone
from typing import NamedTuple

from ipranges.addr import parse_address
from ipranges.dataset import PrefixRecord
from ipranges.errors import NotLoaded
from ipranges.snapshot import ServiceRanges, Snapshot


class Listing(NamedTuple):
    names: list[str]
    sync_token: str
    last_updated: datetime


class ServiceCatalog(NamedTuple):
    services: dict[str, ServiceRanges]
    sync_token: str
    last_updated: datetime


class AddressSearch(NamedTuple):
    address: str
    matches: list[PrefixRecord]

    @property
    def found(self) -> bool:
        return bool(self.matches)


class Status(NamedTuple):
    loaded: bool
    sync_token: str | None
    last_updated: datetime | None


class _Published(NamedTuple):
    snapshot: Snapshot
    last_updated: datetime


class RangeDirectory:
    """
    Holds the current snapshot. Queries read one published reference and never
    lock; publish() swaps the snapshot and its timestamp in a single assignment.
    """

    def __init__(self):
        self._published: _Published | None = None

    def publish(self, snapshot: Snapshot) -> None:
        self._published = _Published(snapshot, datetime.now(timezone.utc))

    def is_loaded(self) -> bool:
        return self._published is not None

    def status(self) -> Status:
        published = self._published
        if published is None:
            return Status(False, None, None)
        return Status(True, published.snapshot.sync_token, published.last_updated)

    @property
    def snapshot(self) -> Snapshot | None:
        published = self._published
        return published.snapshot if published else None

    @property
    def sync_token(self) -> str | None:
        published = self._published
        return published.snapshot.sync_token if published else None

    @property
    def last_updated(self) -> datetime | None:
        published = self._published
        return published.last_updated if published else None

    def _acquire(self) -> _Published:
        published = self._published
        if published is None:
            raise NotLoaded("IP ranges data is not yet loaded")
        return published

    def list_services(self) -> Listing:
        snapshot, last_updated = self._acquire()
        return Listing(snapshot.service_names, snapshot.sync_token, last_updated)

    def list_regions(self) -> Listing:
        snapshot, last_updated = self._acquire()
        return Listing(list(snapshot.regions), snapshot.sync_token, last_updated)

    def get_service(self, name: str, region: str | None = None) -> ServiceRanges | None:
        snapshot, _ = self._acquire()
        return snapshot.service(name, region)

    def get_all_services(self, region: str | None = None) -> ServiceCatalog:
        snapshot, last_updated = self._acquire()
        return ServiceCatalog(snapshot.all_services(region), snapshot.sync_token, last_updated)

    def search_by_address(self, address: str) -> AddressSearch:
        snapshot, _ = self._acquire()
        parsed = parse_address(address)
        return AddressSearch(address, snapshot.search(parsed))
