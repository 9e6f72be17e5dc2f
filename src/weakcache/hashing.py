"""Seeded key hashing (process-lifetime seed, not for persistence)."""

from __future__ import annotations

import hashlib
import os

SEED_BYTES = 16


class KeyHasher:
    def __init__(self, seed: bytes | None = None) -> None:
        self._seed = seed if seed is not None else os.urandom(SEED_BYTES)

    def index(self, key: str) -> int:
        digest = hashlib.blake2b(key.encode("utf-8"), digest_size=8, key=self._seed).digest()
        return int.from_bytes(digest, "little")
