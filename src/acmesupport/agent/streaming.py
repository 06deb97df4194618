"""Incremental reveal of a finished reply into the transcript.

Each call to :meth:`StreamingDelivery.stream` captures the current generation.
Starting another stream (or calling :meth:`StreamingDelivery.supersede`) bumps
the generation, and any step still scheduled for an older stream becomes a
no-op when it wakes up. Steps are never force-cancelled.
"""

import asyncio
import logging
from typing import Callable, List

from ..models import Message, Role

logger = logging.getLogger(__name__)

StepCallback = Callable[[str], None]


class StreamingDelivery:
    """Reveals model replies into a transcript at a fixed cadence."""

    def __init__(
        self,
        transcript: List[Message],
        interval: float = 0.016,
        steps: int = 120,
    ) -> None:
        self._transcript = transcript
        self._interval = interval
        self._steps = max(1, steps)
        self._generation = 0
        self._task: asyncio.Task | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def active(self) -> bool:
        """True while a stream of the current generation is still revealing."""
        return self._task is not None and not self._task.done()

    def step_size(self, full_text: str) -> int:
        return max(1, len(full_text) // self._steps)

    def supersede(self) -> None:
        """Invalidate every step scheduled by earlier streams."""
        self._generation += 1
        self._task = None

    def stream(self, full_text: str, on_step: StepCallback | None = None) -> asyncio.Task:
        """Append an empty model message and schedule its incremental reveal.

        Must be called from within a running event loop. The returned task
        resolves to True once ``full_text`` is fully shown, or False if the
        stream was superseded or its message is no longer last.
        """
        self.supersede()
        self._transcript.append(Message(role=Role.MODEL, content=""))
        index = len(self._transcript) - 1
        generation = self._generation
        self._task = asyncio.get_running_loop().create_task(
            self._run(full_text, index, generation, on_step)
        )
        return self._task

    def _reveal(self, index: int, generation: int, content: str) -> bool:
        if generation != self._generation:
            return False
        if index != len(self._transcript) - 1:
            logger.debug("Dropping misaligned reveal step for message %d", index)
            return False
        message = self._transcript[index]
        if message.role is not Role.MODEL:
            logger.debug("Dropping reveal step: message %d is not a model message", index)
            return False
        message.content = content
        return True

    async def _run(
        self,
        full_text: str,
        index: int,
        generation: int,
        on_step: StepCallback | None,
    ) -> bool:
        total = len(full_text)
        step = self.step_size(full_text)
        shown = 0
        while shown < total:
            shown = min(total, shown + step)
            content = full_text[:shown]
            if not self._reveal(index, generation, content):
                return False
            if on_step is not None:
                on_step(content)
            if shown < total:
                await asyncio.sleep(self._interval)
        return self._reveal(index, generation, full_text)
