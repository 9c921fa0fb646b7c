import json

import pytest

SAMPLE_DOCUMENT = {
    "syncToken": "1700000000",
    "createDate": "2023-11-14-22-13-20",
    "prefixes": [
        {
            "ip_prefix": "1.2.3.0/24",
            "region": "us-east-1",
            "service": "EC2",
            "network_border_group": "us-east-1",
        },
        {
            "ip_prefix": "1.2.4.0/24",
            "region": "us-west-2",
            "service": "EC2",
            "network_border_group": "us-west-2",
        },
        {
            "ip_prefix": "1.2.0.0/16",
            "region": "us-east-1",
            "service": "AMAZON",
            "network_border_group": "us-east-1",
        },
        {
            "ip_prefix": "52.94.76.0/22",
            "region": "GLOBAL",
            "service": "ROUTE53",
            "network_border_group": "GLOBAL",
        },
    ],
    "ipv6_prefixes": [
        {
            "ipv6_prefix": "2600:1f18::/33",
            "region": "us-east-1",
            "service": "EC2",
            "network_border_group": "us-east-1",
        },
        {
            "ipv6_prefix": "2600:1f00::/24",
            "region": "us-east-1",
            "service": "AMAZON",
            "network_border_group": "us-east-1",
        },
    ],
}


@pytest.fixture
def sample_document() -> dict:
    return json.loads(json.dumps(SAMPLE_DOCUMENT))


@pytest.fixture
def sample_raw(sample_document) -> bytes:
    return json.dumps(sample_document).encode()
