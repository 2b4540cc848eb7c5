"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Shared chunk loading types.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Literal, TypeAlias

ChunkId: TypeAlias = str | int

LoadState = Literal["unknown", "skipped", "in_flight", "loaded"]

TERMINAL_STATES: tuple[LoadState, ...] = ("skipped", "loaded")


@dataclass(slots=True, eq=False)
class PendingLoad:
    """
    In-flight cache entry shared by every waiter of one load attempt.

    Attributes:
        future: Shared future handed to each waiter; settled exactly once.
        attempt: 1-based attempt number for this chunk within the cache.
        started_at_s: Monotonic timestamp when the attempt started.
        waiters: Number of `request_load` calls served by this attempt.
    """

    future: asyncio.Future[None]
    attempt: int = 1
    started_at_s: float = field(default_factory=time.monotonic)
    waiters: int = 1

    def resolve(self) -> None:
        if not self.future.done():
            self.future.set_result(None)

    def reject(self, error: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(error)
