"""
Settled fan-out helpers: join every branch, tag each outcome.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, List, Optional


@dataclass
class Outcome:
    """Result of one branch of a settled fan-out."""

    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def gather_settled(*aws: Awaitable) -> List[Outcome]:
    """
    Run awaitables concurrently and wait for all of them.

    One branch raising never cancels its siblings. Exception subclasses are
    captured into the branch's Outcome; anything else (CancelledError,
    KeyboardInterrupt) propagates.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    outcomes = []
    for result in results:
        if isinstance(result, Exception):
            outcomes.append(Outcome(error=result))
        elif isinstance(result, BaseException):
            raise result
        else:
            outcomes.append(Outcome(value=result))
    return outcomes
