"""Bounded-parallel execution of independent async tasks."""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from apollo.log_config import logger

T = TypeVar("T")


@dataclass(frozen=True)
class TaskError:
    """Slot value for a task that raised."""

    index: int
    error: BaseException


async def run_bounded(
    tasks: Sequence[Callable[[], Awaitable[T]]],
    limit: int,
) -> list[T | TaskError]:
    """Run ``tasks`` with at most ``limit`` in flight.

    Workers share one cursor over the task list; each claims the next index
    and writes the outcome into that index's slot, so ``results[i]`` always
    belongs to ``tasks[i]``. A task that raises leaves a :class:`TaskError` in
    its slot and its siblings keep running.
    """
    if limit < 1:
        msg = f"limit must be at least 1, got {limit}"
        raise ValueError(msg)
    if not tasks:
        return []

    results: list[T | TaskError | None] = [None] * len(tasks)
    cursor = iter(range(len(tasks)))

    async def worker() -> None:
        for index in cursor:
            try:
                results[index] = await tasks[index]()
            except Exception as e:  # noqa: BLE001
                logger.error("Task %s failed: %s", index, e)
                results[index] = TaskError(index=index, error=e)

    await asyncio.gather(*(worker() for _ in range(min(limit, len(tasks)))))
    return results  # type: ignore[return-value]
