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
Session Reaction Engine

Decides how a guild's voice session reacts to one presence change.

Per notification, in this order:
1. Session not connected or not bound: ignore the notification
2. Bot left voice entirely: tear down, emit disconnect, stop
3. Pause policy (if pause_on_empty)
4. Bot joined voice: follow its server mute / stage suppress state
5. Someone left the bound channel: maybe start the empty countdown
6. Someone is in the bound channel: maybe cancel the countdown
7. Someone switched channels: rebind / countdown bookkeeping
"""

import discord
import mafic
from loguru import logger

from core.events import SessionEvent, SessionEvents
from core.policies import PausePolicy, PolicyState, StageSuppressionPolicy
from core.presence import PresenceSnapshot
from core.router import ChannelBindingRouter
from core.session import GuildSession, SessionManager
from core.timers import EmptyChannelTimers
from core.transitions import DISPATCH_ORDER, Transition, classify


class SessionReactionEngine:
    """Reacts to voice presence changes for every guild session.

    Attributes:
        sessions: Live sessions by guild
        timers: Empty-channel countdowns by guild
        events: Lifecycle event sink
        router: Countdown and rebinding handlers
        _policy_states: guild_id -> PolicyState (auto-pause bookkeeping)
    """

    def __init__(
        self,
        sessions: SessionManager,
        timers: EmptyChannelTimers,
        directory,
        events: SessionEvents,
    ) -> None:
        self.sessions = sessions
        self.timers = timers
        self.events = events
        self.pause_policy = PausePolicy(directory)
        self.stage_policy = StageSuppressionPolicy(directory)
        self.router = ChannelBindingRouter(sessions, timers, directory, events, self.teardown)
        self._policy_states: dict[int, PolicyState] = {}
        self._handlers = {
            Transition.AGENT_JOINED: self._agent_joined,
            Transition.OCCUPANT_LEFT: self._occupant_left,
            Transition.OCCUPANT_JOINED: self._occupant_joined,
            Transition.CHANNEL_SWITCH: self._channel_switch,
        }

    def policy_state(self, guild_id: int) -> PolicyState:
        """Get or create the auto-pause bookkeeping for a guild."""
        return self._policy_states.setdefault(guild_id, PolicyState())

    def forget(self, guild_id: int) -> None:
        """Drop countdown and auto-pause state for a guild."""
        self.timers.cancel(guild_id)
        self._policy_states.pop(guild_id, None)

    async def teardown(self, session: GuildSession) -> None:
        """End a session. Already-deleted sessions and disconnect errors are ignored."""
        self.forget(session.guild_id)
        try:
            await session.delete()
        except KeyError:
            logger.debug(f"guild {session.guild_id}: session already deleted")
        except (mafic.MaficException, discord.DiscordException) as e:
            logger.debug(f"guild {session.guild_id}: disconnect failed during teardown: {e}")

    async def handle(self, old: PresenceSnapshot, new: PresenceSnapshot) -> frozenset[Transition]:
        """React to one presence change.

        Args:
            old: Participant's presence before the change
            new: Participant's presence after the change

        Returns:
            Transitions that were acted on (empty if the notification was ignored)
        """
        session = self.sessions.get(new.guild_id)
        if session is None or not session.active:
            return frozenset()

        transitions = classify(old, new, session.channel_id)

        if Transition.AGENT_LEFT in transitions:
            await self._agent_left(session)
            return transitions

        if session.options.pause_on_empty:
            await self.pause_policy.apply(session, self.policy_state(session.guild_id))

        for transition in DISPATCH_ORDER:
            if transition in transitions:
                await self._handlers[transition](session, old, new)

        return transitions

    async def _agent_left(self, session: GuildSession) -> None:
        logger.info(f"guild {session.guild_id}: disconnected from voice")
        await self.teardown(session)
        self.events.emit(SessionEvent.DISCONNECT, session)

    async def _agent_joined(self, session: GuildSession, old: PresenceSnapshot, new: PresenceSnapshot) -> None:
        await self.stage_policy.apply(session, old, new)

    async def _occupant_left(self, session: GuildSession, old: PresenceSnapshot, new: PresenceSnapshot) -> None:
        self.router.occupant_left(session)

    async def _occupant_joined(self, session: GuildSession, old: PresenceSnapshot, new: PresenceSnapshot) -> None:
        self.router.occupant_joined(session)

    async def _channel_switch(self, session: GuildSession, old: PresenceSnapshot, new: PresenceSnapshot) -> None:
        self.router.channel_switch(session, new)
