import json
import logging
from dataclasses import dataclass, field

from ipranges.addr import IPV4, IPV6, Cidr, parse_cidr
from ipranges.errors import DatasetUnparsable, MalformedCidr

logger = logging.getLogger(__name__)

# (list key in the document, prefix key inside each entry, family)
PREFIX_LISTS = (
    ("prefixes", "ip_prefix", IPV4),
    ("ipv6_prefixes", "ipv6_prefix", IPV6),
)


@dataclass(frozen=True)
class PrefixRecord:
    cidr: str
    family: int
    service: str
    region: str
    network_border_group: str
    network: Cidr = field(compare=False, repr=False)


@dataclass(frozen=True)
class ParsedDataset:
    sync_token: str
    create_date: str
    records: list[PrefixRecord]
    dropped: int = 0


def _parse_entry(entry, prefix_key: str, family: int) -> PrefixRecord | None:
    if not isinstance(entry, dict):
        return None
    cidr = entry.get(prefix_key)
    try:
        network = parse_cidr(cidr)
    except MalformedCidr:
        return None
    if network.family != family:
        return None
    service = entry.get("service")
    region = entry.get("region")
    if not isinstance(service, str) or not service:
        return None
    if not isinstance(region, str) or not region:
        return None
    border_group = entry.get("network_border_group") or ""
    if not isinstance(border_group, str):
        return None
    return PrefixRecord(cidr, family, service, region, border_group, network)


def parse_dataset(raw: bytes | str) -> ParsedDataset:
    """
    Validate an ip-ranges.json document and normalize it to prefix records.

    Malformed entries are skipped and counted. The whole document is rejected
    with DatasetUnparsable only when it is not JSON, not an object, or carries
    neither prefix list.
    """
    try:
        document = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise DatasetUnparsable(f"IP ranges document is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise DatasetUnparsable("IP ranges document is not a JSON object")
    if all(document.get(list_key) is None for list_key, _, _ in PREFIX_LISTS):
        raise DatasetUnparsable("IP ranges document has no prefix lists")

    records: list[PrefixRecord] = []
    dropped = 0
    for list_key, prefix_key, family in PREFIX_LISTS:
        entries = document.get(list_key)
        if entries is None:
            continue
        if not isinstance(entries, list):
            raise DatasetUnparsable(f"{list_key!r} is not a list")
        for entry in entries:
            record = _parse_entry(entry, prefix_key, family)
            if record is None:
                dropped += 1
            else:
                records.append(record)

    if dropped:
        logger.warning("Dropped %d malformed prefix entries", dropped)
    sync_token = document.get("syncToken")
    return ParsedDataset(
        sync_token="" if sync_token is None else str(sync_token),
        create_date=str(document.get("createDate") or ""),
        records=records,
        dropped=dropped,
    )
