"""
Keyed fingerprint of a Secret ``data`` payload.

Two payloads are compared by hashing them with the same per-process random
key (BLAKE2b in keyed mode). Digests are only comparable inside one process
run and must never be stored.
"""
from __future__ import annotations
import hashlib
import secrets
from typing import Mapping, Optional, Union

from .errors import FingerprintError

Payload = Mapping[str, Union[str, bytes, None]]

KEY_SIZE = 32
DIGEST_SIZE = 32


def _as_bytes(value: Union[str, bytes, None]) -> bytes:
    if value is None:
        return b""
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


def serialize(data: Optional[Payload]) -> bytes:
    """Serialize a payload to bytes with keys in sorted order.

    Every key and value is length-prefixed so no choice of content can make
    two different payloads serialize alike.
    """
    buf = bytearray()
    for key in sorted(data or {}):
        k = _as_bytes(key)
        v = _as_bytes(data[key])
        buf += b"%d:%s=%d:%s;" % (len(k), k, len(v), v)
    return bytes(buf)


class Fingerprinter:
    """Hashes payloads with one random key chosen at construction."""

    def __init__(self, key: Optional[bytes] = None):
        if key is None:
            key = secrets.token_bytes(KEY_SIZE)
        if not isinstance(key, (bytes, bytearray)) or not key:
            raise FingerprintError("hash key must be non-empty bytes")
        if len(key) > hashlib.blake2b.MAX_KEY_SIZE:
            raise FingerprintError(
                f"hash key is {len(key)} bytes, at most {hashlib.blake2b.MAX_KEY_SIZE} allowed")
        self._key = bytes(key)

    def digest(self, data: Optional[Payload]) -> bytes:
        h = hashlib.blake2b(key=self._key, digest_size=DIGEST_SIZE)
        h.update(serialize(data))
        return h.digest()
