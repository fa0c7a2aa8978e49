"""
Shard/salt addressing.

Turns a plaintext identifier into the shard it belongs to, the shard-prefixed
salted hash used as the record's lookup key, and the composite string handed
to the record store for field-level encryption. The shard prefix makes a
hashed identifier self-describing for salt lookup during verification.
"""

from __future__ import annotations

import hmac
import re
from typing import TYPE_CHECKING

from pydantic import BaseModel

from .enums import SaltPurpose
from .errors import InvalidInputError
from .hashing import Sha256Hasher
from .primitives import SEPARATOR

if TYPE_CHECKING:
    from .stores import SaltStore

_IDENTIFIER_PATTERN = re.compile(r"^[0-9]+$")


class IdentityAddress(BaseModel):
    """Addressing outcome for one identifier."""

    shard: int
    hashed_identifier: str
    encryption_composite: str

    @property
    def salted_hash(self) -> str:
        """The hash without its shard prefix; keys blobs and credential requests."""
        return self.hashed_identifier.split(SEPARATOR, 1)[1]


class ShardAddresser:
    """Computes shard, hashed identifier and encryption composite."""

    def __init__(self, salt_store: "SaltStore", hasher: Sha256Hasher, modulus: int):
        if modulus < 1:
            raise ValueError("Shard modulus must be a positive integer")
        self.salt_store = salt_store
        self.hasher = hasher
        self.modulus = modulus

    def shard_of(self, identifier: str) -> int:
        if not isinstance(identifier, str) or not _IDENTIFIER_PATTERN.match(identifier):
            raise InvalidInputError("Identifier must be a string of digits", path="identifier")
        return int(identifier) % self.modulus

    def address(self, identifier: str) -> IdentityAddress:
        shard = self.shard_of(identifier)
        hash_salt = self.salt_store.salt_for(shard, SaltPurpose.HASH)
        encrypt_salt = self.salt_store.salt_for(shard, SaltPurpose.ENCRYPT)

        salted = self.hasher.salted_hash(identifier, hash_salt)
        return IdentityAddress(
            shard=shard,
            hashed_identifier=f"{shard}{SEPARATOR}{salted}",
            encryption_composite=SEPARATOR.join((str(shard), identifier, encrypt_salt)),
        )

    def verify(self, identifier: str, hashed_identifier: str) -> bool:
        """Check a hashed identifier against a plaintext one using its embedded shard."""
        prefix, _, digest = hashed_identifier.partition(SEPARATOR)
        if not prefix.isdigit() or not digest:
            return False
        if self.shard_of(identifier) != int(prefix):
            return False
        hash_salt = self.salt_store.salt_for(int(prefix), SaltPurpose.HASH)
        return hmac.compare_digest(self.hasher.salted_hash(identifier, hash_salt), digest)
