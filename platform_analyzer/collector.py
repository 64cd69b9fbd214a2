from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass, field
from typing import Callable, Iterable

from .models import SignalValue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Collector:
    """One independent signal source. ``fn`` returns ``None`` when it has nothing to say."""

    name: str
    fn: Callable[[], SignalValue | None]
    timeout_s: float = 3.0


@dataclass
class Collection:
    signals: dict[str, SignalValue] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    timings_ms: dict[str, int] = field(default_factory=dict)


def _timed(fn: Callable[[], SignalValue | None]) -> tuple[SignalValue | None, int]:
    start = time.perf_counter()
    value = fn()
    return value, int((time.perf_counter() - start) * 1000)


def collect_signals(
    collectors: Iterable[Collector],
    overall_timeout_s: float = 8.0,
    max_workers: int = 8,
) -> Collection:
    """Run every collector concurrently and wait for all of them, up to a deadline.

    A collector that raises or runs past its own timeout (or the overall one)
    is reported missing; it never fails the whole collection. The pool is
    shut down without waiting, so a stuck collector can't hold up the caller.
    """
    collectors = list(collectors)
    out = Collection()
    if not collectors:
        return out

    start = time.perf_counter()
    overall_deadline = start + overall_timeout_s
    pool = ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(collectors))), thread_name_prefix="signal")
    try:
        futures = [(c, pool.submit(_timed, c.fn)) for c in collectors]

        # join barrier
        for c, fut in futures:
            deadline = min(start + c.timeout_s, overall_deadline)
            remaining = max(0.0, deadline - time.perf_counter())
            try:
                value, elapsed_ms = fut.result(timeout=remaining)
            except Exception as e:
                out.missing.append(c.name)
                out.timings_ms[c.name] = int((time.perf_counter() - start) * 1000)
                # FuturesTimeout is the builtin TimeoutError on 3.11+, so a collector
                # raising its own TimeoutError looks the same until we ask the future.
                raised_by_collector = fut.done() and fut.exception() is e
                if isinstance(e, FuturesTimeout) and not raised_by_collector:
                    fut.cancel()
                    out.warnings.append(f"{c.name}: timed out")
                    logger.warning("signal collector %s timed out after %.1fs", c.name, c.timeout_s)
                else:
                    out.warnings.append(f"{c.name}: unavailable ({type(e).__name__})")
                    logger.warning("signal collector %s failed: %s", c.name, e, exc_info=True)
                continue

            out.timings_ms[c.name] = elapsed_ms
            if value is None:
                out.missing.append(c.name)
            else:
                out.signals[c.name] = value
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    return out
