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

"""Voice channel lookups backed by the Discord client cache."""

import discord
from discord.ext import commands


def is_listener(member: discord.Member, ignore_deafened: bool = False) -> bool:
    """Check if a member counts as someone listening to the bot.

    Bots never count. With ignore_deafened, members who deafened themselves
    (or were server-deafened) don't count either.
    """
    if member.bot:
        return False
    if ignore_deafened and member.voice and (member.voice.self_deaf or member.voice.deaf):
        return False
    return True


class VoiceDirectory:
    """Read-only view of guild voice channels for the session core.

    Answers "is anyone listening in this channel?" and performs the
    bot's request-to-speak on stage channels.

    Attributes:
        bot: Bot whose member/channel cache is used
        ignore_deafened: Treat deafened members as absent
    """

    def __init__(self, bot: commands.Bot, ignore_deafened: bool = False) -> None:
        self.bot = bot
        self.ignore_deafened = ignore_deafened

    def listeners(self, guild_id: int, channel_id: int | None) -> list[discord.Member]:
        """Members in a voice channel that count as listeners."""
        if channel_id is None:
            return []
        guild = self.bot.get_guild(guild_id)
        if not guild:
            return []
        channel = guild.get_channel(channel_id)
        if not channel or not isinstance(channel, (discord.VoiceChannel, discord.StageChannel)):
            return []
        return [m for m in channel.members if is_listener(m, self.ignore_deafened)]

    def is_channel_empty(self, guild_id: int, channel_id: int | None) -> bool:
        """True if nobody (other than bots) is listening in the channel."""
        return not self.listeners(guild_id, channel_id)

    async def request_to_speak(self, guild_id: int) -> None:
        """Ask to become a speaker on the stage channel the bot is in.

        Raises:
            discord.DiscordException: Request failed (missing permissions, not on stage)
        """
        guild = self.bot.get_guild(guild_id)
        if guild and guild.me:
            await guild.me.request_to_speak()
