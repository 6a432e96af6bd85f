# Copyright (C) 2026 grodz
#
# This file is part of Lull.
#
# Lull is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.

"""Per-guild empty-channel countdowns."""

import asyncio
from typing import Awaitable, Callable

from loguru import logger


class EmptyChannelTimers:
    """Registry of pending "channel went empty" countdowns, one per guild.

    Each countdown is a background task that sleeps for the cooldown and then
    runs its callback. The callback is responsible for re-checking whatever
    conditions it depends on: scheduling does not freeze them.

    Rules:
    - At most one countdown per guild. schedule() cancels any existing one
      before starting the new one, so handles never leak.
    - A countdown removes its own entry right before its callback runs, so
      has_pending() is False while the callback executes and afterwards.
    - cancel() removes the entry and cancels the task; a cancelled countdown
      never runs its callback.

    Attributes:
        _tasks: guild_id -> countdown task
    """

    def __init__(self) -> None:
        self._tasks: dict[int, asyncio.Task] = {}

    def schedule(
        self,
        guild_id: int,
        delay_ms: int,
        callback: Callable[[], Awaitable[None]],
    ) -> asyncio.Task:
        """Start a countdown for a guild, replacing any pending one.

        Args:
            guild_id: Guild the countdown belongs to
            delay_ms: Milliseconds to wait before running callback
            callback: Coroutine function run when the countdown completes

        Returns:
            The countdown task (mostly useful for tests)
        """
        self.cancel(guild_id)
        task = asyncio.create_task(self._countdown(guild_id, delay_ms, callback))
        self._tasks[guild_id] = task
        logger.debug(f"guild {guild_id}: empty channel countdown started ({delay_ms}ms)")
        return task

    def cancel(self, guild_id: int) -> bool:
        """Cancel a guild's pending countdown.

        Returns:
            True if a countdown was pending and got cancelled
        """
        if task := self._tasks.pop(guild_id, None):
            if not task.done():
                task.cancel()
                logger.debug(f"guild {guild_id}: empty channel countdown cancelled")
                return True
        return False

    def has_pending(self, guild_id: int) -> bool:
        """Check if a guild is currently counting down."""
        task = self._tasks.get(guild_id)
        return task is not None and not task.done()

    def get(self, guild_id: int) -> asyncio.Task | None:
        """Get a guild's pending countdown task, if any."""
        return self._tasks.get(guild_id)

    def cancel_all(self) -> None:
        """Cancel every pending countdown (cog unload / shutdown)."""
        for task in self._tasks.values():
            if not task.done():
                task.cancel()
        self._tasks.clear()

    def __len__(self) -> int:
        return len(self._tasks)

    async def _countdown(
        self,
        guild_id: int,
        delay_ms: int,
        callback: Callable[[], Awaitable[None]],
    ) -> None:
        """Background task: wait, release the slot, run the callback."""
        try:
            await asyncio.sleep(max(delay_ms, 0) / 1000)
        except asyncio.CancelledError:
            return  # Superseded by repopulation or teardown

        # A newer countdown may have replaced this one while we were waking up
        if self._tasks.get(guild_id) is not asyncio.current_task():
            return
        del self._tasks[guild_id]

        try:
            await callback()
        except Exception:
            logger.opt(exception=True).error(f"guild {guild_id}: empty channel check failed")
