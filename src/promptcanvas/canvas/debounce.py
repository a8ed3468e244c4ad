"""Prompt input debouncing and selection coordination.

Keystrokes in the prompt field go through :meth:`PromptDebouncer.on_input`.
Each call restarts a quiet-period timer; only when the user stops typing for
``quiet_period`` seconds is the latest text submitted.  Picking an entry from
the prompt history submits immediately, and selecting a tile cancels any
pending submission so that showing a tile's prompt never regenerates it.
"""

from __future__ import annotations

import asyncio
import logging

from promptcanvas.canvas.models import CommandResult
from promptcanvas.canvas.state_machine import CanvasStateMachine

logger = logging.getLogger(__name__)


class PromptDebouncer:
    """Coalesce prompt edits into at most one submission per quiet period.

    Args:
        canvas: State machine receiving prompt edits and submissions
        quiet_period: Seconds of inactivity before the prompt is submitted
    """

    def __init__(self, canvas: CanvasStateMachine, quiet_period: float = 0.5):
        self.canvas = canvas
        self.quiet_period = quiet_period
        self._timer: asyncio.Task | None = None
        self._submission: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        """Whether a timer is waiting to fire."""
        return self._timer is not None and not self._timer.done()

    def on_input(self, text: str) -> None:
        """Record an edit and restart the quiet-period timer.

        Must be called from within a running event loop.
        """
        self.canvas.set_prompt(text)
        self.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._fire_after_quiet(text))

    async def select_history(self, text: str) -> CommandResult:
        """Submit a prompt picked from history without waiting."""
        self.cancel()
        self.canvas.set_prompt(text)
        return await self.canvas.submit_prompt(text)

    def select_tile(self, tile_id: str) -> None:
        self.cancel()
        self.canvas.select(tile_id)

    def cancel(self) -> None:
        """Drop the pending submission, if any. In-flight requests continue."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def flush(self) -> CommandResult | None:
        """Wait for the pending timer and the submission it started."""
        timer = self._timer
        if timer is not None:
            try:
                await timer
            except asyncio.CancelledError:
                if not timer.cancelled():
                    raise
        submission = self._submission
        if submission is None:
            return None
        return await submission

    async def _fire_after_quiet(self, text: str) -> None:
        await asyncio.sleep(self.quiet_period)
        logger.debug(f"Quiet period elapsed, submitting prompt: {text[:50]}")
        # Run the submission as its own task so a later keystroke cancelling
        # the timer does not cancel a request already sent
        self._submission = asyncio.get_running_loop().create_task(
            self.canvas.submit_prompt(text)
        )
