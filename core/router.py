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

"""
Channel Binding Router

Keeps the session bound to the channel the bot is actually in and keeps the
guild's empty-channel countdown in step with who is in that channel.

Timeline for an emptied channel:
- Last listener leaves: countdown starts (leave_on_empty_cooldown_ms)
- Someone comes back before it fires: countdown cancelled, channel_populate
- Countdown fires and channel is still empty: disconnect (if leave_on_empty),
  then empty_channel
"""

from typing import Awaitable, Callable

from loguru import logger

from core.events import SessionEvent, SessionEvents
from core.presence import PresenceSnapshot
from core.session import GuildSession, SessionManager
from core.timers import EmptyChannelTimers


class ChannelBindingRouter:
    """Occupancy countdowns and channel rebinding for voice sessions.

    Attributes:
        sessions: Live sessions, consulted when a countdown fires
        timers: Per-guild countdown registry
        directory: Occupancy lookups (is_channel_empty)
        events: Lifecycle event sink
        teardown: Coroutine function that ends a session
    """

    def __init__(
        self,
        sessions: SessionManager,
        timers: EmptyChannelTimers,
        directory,
        events: SessionEvents,
        teardown: Callable[[GuildSession], Awaitable[None]],
    ) -> None:
        self.sessions = sessions
        self.timers = timers
        self.directory = directory
        self.events = events
        self.teardown = teardown

    def _is_empty(self, session: GuildSession) -> bool:
        return self.directory.is_channel_empty(session.guild_id, session.channel_id)

    # =========================================================================
    # Countdown
    # =========================================================================

    def schedule_empty_check(self, session: GuildSession) -> None:
        """Start (or restart) the guild's empty-channel countdown."""
        async def check() -> None:
            await self._on_countdown_done(session)

        self.timers.schedule(session.guild_id, session.options.leave_on_empty_cooldown_ms, check)

    async def _on_countdown_done(self, session: GuildSession) -> None:
        """Countdown fired: re-validate everything, state may have moved on."""
        if not self._is_empty(session):
            return
        if self.sessions.get(session.guild_id) is not session:
            return  # Torn down or replaced meanwhile

        if session.options.leave_on_empty:
            logger.info(f"guild {session.guild_id}: channel empty, disconnecting")
            await self.teardown(session)

        self.events.emit(SessionEvent.EMPTY_CHANNEL, session)

    def check_repopulated(self, session: GuildSession) -> None:
        """Cancel a pending countdown if the bound channel has listeners again."""
        if not self.timers.has_pending(session.guild_id) or self._is_empty(session):
            return
        self.timers.cancel(session.guild_id)
        logger.info(f"guild {session.guild_id}: listener back, staying")
        self.events.emit(SessionEvent.CHANNEL_POPULATE, session)

    # =========================================================================
    # Transition Handlers
    # =========================================================================

    def occupant_left(self, session: GuildSession) -> None:
        """Someone left voice from the bound channel."""
        if not self._is_empty(session):
            return
        self.schedule_empty_check(session)

    def occupant_joined(self, session: GuildSession) -> None:
        """Someone is now in the bound channel."""
        self.check_repopulated(session)

    def channel_switch(self, session: GuildSession, new: PresenceSnapshot) -> None:
        """Someone moved from one channel to another."""
        if new.is_agent:
            self._agent_switched(session, new)
        elif new.channel_id != session.channel_id:
            # Moved elsewhere; keep an already running countdown as is
            if self._is_empty(session) and not self.timers.has_pending(session.guild_id):
                self.schedule_empty_check(session)
        else:
            self.check_repopulated(session)

    def _agent_switched(self, session: GuildSession, new: PresenceSnapshot) -> None:
        """Bot was moved: follow it, then judge the new channel from scratch."""
        if session.connected:
            session.channel_id = new.channel_id
            logger.info(f"guild {session.guild_id}: moved to channel {new.channel_id}")

        if self._is_empty(session):
            self.schedule_empty_check(session)
        else:
            self.check_repopulated(session)
