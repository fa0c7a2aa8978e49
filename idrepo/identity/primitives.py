"""
Common primitives shared across the identity modules.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Union

from ulid import ULID

from .errors import ProcessingFailedError

# Separator used inside hashed identifiers, encryption composites and name-based ids.
SEPARATOR = "_"

# Tree-structured payload values: mappings, arrays and JSON scalars.
TreeValue = Union[Dict[str, Any], List[Any], str, int, float, bool, None]


def generate_ulid() -> str:
    """Generate a ULID for row ids. ULIDs are lexicographically sortable."""
    return str(ULID())


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def name_based_id(*parts: str) -> str:
    """Deterministic UUID (v5, OID namespace) of the given parts joined by SEPARATOR."""
    return str(uuid.uuid5(uuid.NAMESPACE_OID, SEPARATOR.join(parts)))


def timestamped_id(*seed: str) -> str:
    """Name-based id of the ``seed`` parts and the current instant.

    Callers that mint several ids on one clock tick must make the seeds differ.
    """
    return name_based_id(*seed, utc_now().isoformat())


def serialize_tree(value: TreeValue) -> bytes:
    """Serialize a payload tree to compact UTF-8 JSON, preserving key order."""
    try:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise ProcessingFailedError(f"Payload could not be serialized: {e}") from e


def parse_tree(raw: Union[str, bytes, None]) -> TreeValue:
    """Parse serialized JSON back into a payload tree."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ProcessingFailedError(f"Stored payload could not be parsed: {e}") from e
