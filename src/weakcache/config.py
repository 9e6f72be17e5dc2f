"""Configuration helpers for weakcache."""

from dataclasses import dataclass
import os


@dataclass(frozen=True)
class CacheConfig:
    gc_interval_seconds: float
    min_ttl_seconds: float
    max_ttl_seconds: float


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def load_config() -> CacheConfig:
    gc_interval = _env_float("WEAKCACHE_GC_INTERVAL_SECONDS", 1.0)
    if gc_interval <= 0:
        gc_interval = 1.0
    return CacheConfig(
        gc_interval_seconds=gc_interval,
        min_ttl_seconds=max(0.0, _env_float("WEAKCACHE_MIN_TTL_SECONDS", 0.0)),
        max_ttl_seconds=max(0.0, _env_float("WEAKCACHE_MAX_TTL_SECONDS", 0.0)),
    )
