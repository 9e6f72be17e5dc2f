"""Soak workload: hammer a cache from several threads and report what happened."""

from __future__ import annotations

from dataclasses import dataclass
import gc
import logging
import random
import threading
import time
from typing import Callable

from .cache import Cache
from .errors import check_duration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SoakResult:
    fetches: int
    producer_calls: int
    peak_len: int
    len_after_release: int
    len_after_sweep: int


def run_soak(
    cache: Cache,
    *,
    workers: int,
    keys: int,
    duration_seconds: float,
    min_ttl: float,
    max_ttl: float,
    hold: int = 4,
    now: Callable[[], float] | None = None,
) -> SoakResult:
    min_ttl = check_duration("min_ttl", min_ttl)
    max_ttl = check_duration("max_ttl", max_ttl)
    now_fn = now or time.monotonic
    deadline = now_fn() + duration_seconds
    counts = {"fetches": 0, "producer_calls": 0, "peak_len": 0}
    counts_lock = threading.Lock()

    def worker(seed: int) -> None:
        rng = random.Random(seed)  # noqa: S311 - workload shaping only
        held = []
        fetches = 0
        calls = 0
        peak = 0
        while now_fn() < deadline:
            key = f"key-{rng.randrange(keys)}"

            def producer(key: str = key) -> dict[str, str]:
                nonlocal calls
                calls += 1
                return {"key": key}

            held.append(cache.fetch(key, min_ttl, max_ttl, producer))
            fetches += 1
            peak = max(peak, len(cache))
            if len(held) > hold:
                # Drop the oldest handle and let the GC notice.
                held.pop(0)
        held.clear()
        with counts_lock:
            counts["fetches"] += fetches
            counts["producer_calls"] += calls
            counts["peak_len"] = max(counts["peak_len"], peak)

    threads = [
        threading.Thread(target=worker, args=(seed,), name=f"weakcache-soak-{seed}")
        for seed in range(max(1, workers))
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    gc.collect()
    len_after_release = len(cache)
    cache.sweep()
    len_after_sweep = len(cache)
    logger.info(
        "Soak finished: %d fetches, %d producer calls, %d records left",
        counts["fetches"],
        counts["producer_calls"],
        len_after_sweep,
    )
    return SoakResult(
        fetches=counts["fetches"],
        producer_calls=counts["producer_calls"],
        peak_len=counts["peak_len"],
        len_after_release=len_after_release,
        len_after_sweep=len_after_sweep,
    )
