"""Enumerate every row of an infinite-scroll table.

The table only renders what has been scrolled into view, so rows are read,
more are requested, and the loop ends once a whole cycle adds no new key.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable, Optional, Set

import anyio

from admin_ui_tests.errors import WaitTimeoutError

logger = logging.getLogger(__name__)


def normalize_row_key(raw: Optional[str]) -> Optional[str]:
    """Trimmed cell text, or None for blank cells."""
    if raw is None:
        return None
    key = raw.strip()
    return key or None


async def collect_all(
    read_rows: Callable[[], Awaitable[Iterable[Optional[str]]]],
    load_more: Callable[[], Awaitable[None]],
    *,
    settle_delay: float,
    row_key: Callable[[Optional[str]], Optional[str]] = normalize_row_key,
    sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    max_cycles: Optional[int] = None,
) -> Set[str]:
    """Accumulate distinct row keys until a load cycle adds nothing.

    Args:
        read_rows: returns the raw identity values of the rows rendered now
        load_more: asks the page for more rows (e.g. scroll by one viewport)
        settle_delay: seconds to wait after ``load_more`` for rows to arrive
        row_key: maps a raw value to its key; None drops the row
        sleep: awaited with ``settle_delay``
        max_cycles: give up with WaitTimeoutError after this many cycles
    """
    keys: Set[str] = set()
    previous = -1
    cycles = 0

    while True:
        for raw in await read_rows():
            key = row_key(raw)
            if key is not None:
                keys.add(key)

        await load_more()
        await sleep(settle_delay)
        cycles += 1

        if len(keys) == previous:
            logger.debug(f"Row set settled at {len(keys)} keys after {cycles} cycles")
            return keys
        previous = len(keys)

        if max_cycles is not None and cycles >= max_cycles:
            raise WaitTimeoutError(
                name="collect_all",
                payload={"keys": len(keys), "cycles": cycles},
                message=f"row set still growing after {cycles} load cycles",
                timeout=cycles * settle_delay,
            )
