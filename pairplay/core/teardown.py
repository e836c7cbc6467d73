from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable

import structlog

logger = structlog.get_logger(__name__)

TeardownStep = tuple[str, Callable[[], Awaitable[object]]]


async def run_teardown(steps: Iterable[TeardownStep]) -> list[str]:
    """Runs every step in order; a failing step is logged and the rest still run.

    Returns the names of the steps that failed.
    """
    failed: list[str] = []
    for name, close in steps:
        try:
            await close()
        except Exception:
            logger.warning("teardown_step_failed", step=name, exc_info=True)
            failed.append(name)
    return failed
