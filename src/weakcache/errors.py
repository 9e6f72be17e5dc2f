"""Errors raised by the cache itself.

Producer failures are never wrapped: they propagate from ``Cache.fetch``
exactly as the producer raised them.
"""

from __future__ import annotations

import math


class WeakCacheError(Exception):
    """Base error for the cache."""


class InvalidDurationError(WeakCacheError, ValueError):
    def __init__(self, name: str, value: float, message: str) -> None:
        super().__init__(message)
        self.name = name
        self.value = value


def check_duration(name: str, value: float, *, positive: bool = False) -> float:
    seconds = float(value)
    if not math.isfinite(seconds):
        raise InvalidDurationError(name, seconds, f"{name} must be finite, got {seconds!r}")
    if positive and not seconds > 0:
        raise InvalidDurationError(name, seconds, f"{name} must be > 0, got {seconds!r}")
    if seconds < 0:
        raise InvalidDurationError(name, seconds, f"{name} must be >= 0, got {seconds!r}")
    return seconds
