"""
DocInsight - Request Sequencer
Tags asynchronous requests with a generation token so that only results
belonging to the most recent generation are ever applied.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Optional

from core.errors import DocInsightError

logger = logging.getLogger(__name__)


@dataclass
class Tagged:
    """A completed request together with the generation it was issued for."""
    generation: int
    value: Any = None
    error: Optional[DocInsightError] = None
    stale: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.stale


class RequestSequencer:
    """
    Monotonic generation counter.

    Supersession is logical: older requests keep running to completion, but
    their results are reported stale and must not be applied.
    """

    def __init__(self, name: str = "selection") -> None:
        self.name = name
        self._generation = 0

    @property
    def current(self) -> int:
        return self._generation

    def advance(self) -> int:
        """Start a new generation, invalidating every request tagged earlier."""
        self._generation += 1
        logger.debug(f"[{self.name}] generation -> {self._generation}")
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def track(self, generation: int, awaitable: Awaitable[Any]) -> Tagged:
        """
        Await a request issued under `generation`.

        DocInsight errors are captured in the returned Tagged rather than
        raised, so the caller decides how to surface them. The staleness check
        happens after completion, against whatever generation is current then.
        """
        try:
            value = await awaitable
        except DocInsightError as e:
            if not self.is_current(generation):
                logger.debug(f"[{self.name}] stale failure from generation {generation} dropped: {e}")
                return Tagged(generation, error=e, stale=True)
            return Tagged(generation, error=e)

        if not self.is_current(generation):
            logger.debug(
                f"[{self.name}] stale result from generation {generation} dropped "
                f"(current: {self._generation})"
            )
            return Tagged(generation, value=value, stale=True)
        return Tagged(generation, value=value)
