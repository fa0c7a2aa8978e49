"""
Hashing for identifiers, payloads and artifact contents.

All digests are SHA-256 rendered as upper-case hexadecimal. The salted form
digests the data immediately followed by the salt.
"""

import hashlib
from typing import Union


def _to_bytes(data: Union[bytes, str]) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return data


class Sha256Hasher:
    """Default hasher collaborator."""

    def hash(self, data: Union[bytes, str]) -> str:
        return hashlib.sha256(_to_bytes(data)).hexdigest().upper()

    def salted_hash(self, data: Union[bytes, str], salt: Union[bytes, str]) -> str:
        digest = hashlib.sha256()
        digest.update(_to_bytes(data))
        digest.update(_to_bytes(salt))
        return digest.hexdigest().upper()
