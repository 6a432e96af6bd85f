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
Pause Policies

Two independent rules that pause or resume playback in reaction to presence:
- PausePolicy: pause while nobody is listening, resume when someone returns
- StageSuppressionPolicy: follow the bot's own server-mute / stage-suppress
  state when it first joins a channel
"""

from dataclasses import dataclass

import discord
from loguru import logger

from core.presence import ChannelKind, PresenceSnapshot


@dataclass
class PolicyState:
    """Track why playback was paused to avoid unwanted resume.

    Owned by the reaction engine, never stored on the session, so a user's
    /pause is never mistaken for an auto-pause.
    """
    was_auto_paused: bool = False


class PausePolicy:
    """Pause on empty channel, resume only what we paused ourselves."""

    def __init__(self, directory) -> None:
        self.directory = directory

    async def apply(self, session, state: PolicyState) -> None:
        if self.directory.is_channel_empty(session.guild_id, session.channel_id):
            # Already paused (by us, a user or stage mute): not ours to claim
            if session.paused:
                return
            if await session.set_paused(True):
                state.was_auto_paused = True
                logger.info(f"guild {session.guild_id}: auto-paused, channel empty")
            return

        if state.was_auto_paused and await session.set_paused(False):
            state.was_auto_paused = False
            logger.info(f"guild {session.guild_id}: auto-resumed, listener joined")


class StageSuppressionPolicy:
    """Mirror the bot's own mute/suppress state into playback on join.

    Checked in order, first match wins:
    1. Server mute changed: paused = server_muted
    2. Stage channel and suppress changed: paused = suppressed, and when
       suppressed ask to speak (best effort)
    """

    def __init__(self, directory) -> None:
        self.directory = directory

    async def apply(self, session, old: PresenceSnapshot, new: PresenceSnapshot) -> None:
        if new.server_muted is not None and new.server_muted != old.server_muted:
            logger.debug(f"guild {session.guild_id}: server mute is {new.server_muted}, following it")
            await session.set_paused(new.server_muted)
            return

        if (
            new.channel_kind is ChannelKind.STAGE
            and new.suppressed is not None
            and new.suppressed != old.suppressed
        ):
            logger.debug(f"guild {session.guild_id}: stage suppress is {new.suppressed}, following it")
            await session.set_paused(new.suppressed)
            if new.suppressed:
                try:
                    await self.directory.request_to_speak(session.guild_id)
                except discord.DiscordException as e:
                    logger.debug(f"guild {session.guild_id}: request to speak failed: {e}")
