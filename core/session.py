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
Voice Sessions - Per-Guild Session Container

A session is the bot's presence in one guild's voice channel: the mafic
player doing the playback, the channel the session is bound to, and the
options that decide how it reacts to the channel emptying out.
"""

from dataclasses import dataclass

import discord
import mafic
from loguru import logger


@dataclass
class SessionOptions:
    """How a session reacts to its channel emptying out.

    pause_on_empty: Pause playback while nobody is listening
    leave_on_empty: Disconnect once the channel stays empty for the cooldown
    leave_on_empty_cooldown_ms: How long the channel must stay empty
    """
    pause_on_empty: bool = True
    leave_on_empty: bool = True
    leave_on_empty_cooldown_ms: int = 0

    def __post_init__(self) -> None:
        if self.leave_on_empty_cooldown_ms < 0:
            logger.warning(
                f"leave_on_empty_cooldown_ms={self.leave_on_empty_cooldown_ms} negative, clamped to 0"
            )
            self.leave_on_empty_cooldown_ms = 0


class GuildSession:
    """One guild's voice session.

    The playback player is expected to behave like a mafic.Player:
    `connected` attribute, `pause(bool)` and `disconnect(force=...)` coroutines.

    Attributes:
        guild_id: Discord guild ID
        channel_id: Voice channel the session is bound to
        player: Playback player (None until connected)
        options: Empty-channel behavior
    """

    def __init__(
        self,
        manager: "SessionManager",
        guild_id: int,
        channel_id: int | None,
        player: mafic.Player | None,
        options: SessionOptions,
    ) -> None:
        self._manager = manager
        self.guild_id = guild_id
        self.channel_id = channel_id
        self.player = player
        self.options = options

    def __repr__(self) -> str:
        return f"<GuildSession guild={self.guild_id} channel={self.channel_id} connected={self.connected}>"

    @property
    def connected(self) -> bool:
        """True while the playback player holds a live voice connection."""
        return self.player is not None and bool(self.player.connected)

    @property
    def active(self) -> bool:
        """True if the session has both a connection and a bound channel."""
        return self.connected and self.channel_id is not None

    @property
    def paused(self) -> bool:
        """True if playback is paused, whoever paused it."""
        return self.player is not None and bool(self.player.paused)

    async def set_paused(self, paused: bool) -> bool:
        """Pause or resume playback.

        Returns:
            False if the player refused (error is logged, not raised)
        """
        try:
            await self.player.pause(paused)
        except (mafic.MaficException, discord.DiscordException) as e:
            logger.warning(f"guild {self.guild_id}: failed to set paused={paused}: {e}")
            return False
        return True

    async def delete(self) -> None:
        """Tear this session down. Raises KeyError if already deleted."""
        await self._manager.delete(self.guild_id)


class SessionManager:
    """Tracks the live GuildSession of every guild.

    Usage:
        session = manager.create(guild_id, channel_id, player, options)
        manager.get(guild_id)         # GuildSession or None
        guild_id in manager           # Is the guild still tracked?
        await manager.delete(guild_id)
    """

    def __init__(self) -> None:
        self._sessions: dict[int, GuildSession] = {}

    def __contains__(self, guild_id: int) -> bool:
        return guild_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def create(
        self,
        guild_id: int,
        channel_id: int | None,
        player: mafic.Player | None,
        options: SessionOptions | None = None,
    ) -> GuildSession:
        """Create (or replace) the session for a guild."""
        session = GuildSession(self, guild_id, channel_id, player, options or SessionOptions())
        self._sessions[guild_id] = session
        logger.debug(f"guild {guild_id}: session created on channel {channel_id}")
        return session

    def get(self, guild_id: int) -> GuildSession | None:
        return self._sessions.get(guild_id)

    async def delete(self, guild_id: int) -> None:
        """Stop tracking a guild's session and disconnect its player.

        Raises:
            KeyError: Session was not tracked (already torn down)
        """
        session = self._sessions.pop(guild_id)
        logger.debug(f"guild {guild_id}: session deleted")
        if session.connected:
            await session.player.disconnect(force=True)
