"""Optimistic update: apply locally, confirm remotely, revert on failure."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def optimistic_action(
    apply: Callable[[], None],
    confirm: Callable[[], Awaitable[T]],
    revert: Callable[[], None],
) -> T:
    """Run *apply* before awaiting *confirm*; call *revert* and re-raise if it fails."""
    apply()
    try:
        return await confirm()
    except BaseException:
        logger.info("Optimistic update reverted")
        revert()
        raise
