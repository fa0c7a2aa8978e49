"""Factory helpers shared by the tests."""

import base64
from typing import Iterable, Tuple

from idrepo.identity.biometrics import CBEFF_NAMESPACE

IDENTIFIER = "1234567890123"
SHARD_MODULUS = 10


def cbeff(*entries: Tuple[str, str, str]) -> bytes:
    """Build a CBEFF container from (type, subtype, data) sub-records."""
    children = "".join(
        f"<BIR><BDBInfo><Type>{type_}</Type><Subtype>{subtype}</Subtype></BDBInfo>"
        f"<BDB>{data}</BDB></BIR>"
        for type_, subtype, data in entries
    )
    return (
        f'<?xml version="1.0" encoding="UTF-8"?><BIR xmlns="{CBEFF_NAMESPACE}">{children}</BIR>'
    ).encode("utf-8")


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def bdb_values(records: Iterable) -> dict:
    """Map (type, subtype) -> BDB text of extracted biometric records."""
    values = {}
    for record in records:
        for child in record.element:
            if child.tag.endswith("BDB"):
                values[record.key] = child.text
    return values


def sample_identity() -> dict:
    return {
        "fullName": [{"language": "eng", "value": "Jane Doe"}],
        "dateOfBirth": "1990/01/01",
        "phone": "555-0100",
        "proofOfAddress": {"value": "poa", "format": "pdf", "type": "DOC001"},
        "individualBiometrics": {"value": "bio", "format": "cbeff", "version": 1.0},
    }
