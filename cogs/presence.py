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

"""Voice presence handling for Lull."""

import asyncio

import discord
import mafic
from discord import app_commands
from discord.ext import commands
from loguru import logger

from core.engine import SessionReactionEngine
from core.events import SessionEvents
from core.presence import snapshot_from_voice_state
from core.session import GuildSession, SessionManager
from core.timers import EmptyChannelTimers
from utils.voice import VoiceDirectory


class Presence(commands.Cog):
    """Keeps voice sessions in step with who is in the channel."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot
        self.sessions = SessionManager()
        self.timers = EmptyChannelTimers()
        self.directory = VoiceDirectory(
            bot, ignore_deafened=bot.config_manager.get("ignore_deafened", False)
        )
        self.engine = SessionReactionEngine(
            self.sessions, self.timers, self.directory, SessionEvents(bot.dispatch)
        )

    async def cog_unload(self) -> None:
        """Cleanup when cog is unloaded."""
        self.timers.cancel_all()

    def start_session(self, player: mafic.Player) -> GuildSession:
        """Track a freshly connected player as its guild's session."""
        self.engine.forget(player.guild.id)
        session = self.sessions.create(
            player.guild.id,
            player.channel.id,
            player,
            self.bot.config_manager.session_options(),
        )
        logger.info(f"session started in #{player.channel.name}")
        return session

    # =========================================================================
    # Commands
    # =========================================================================

    @app_commands.command(name="join", description="join your voice channel")
    @app_commands.guild_only()
    async def join(self, interaction: discord.Interaction) -> None:
        """Connect to the caller's voice channel and start a session."""
        voice = interaction.user.voice
        if not voice or not voice.channel:
            await interaction.response.send_message("join a voice channel first", ephemeral=True)
            return

        if interaction.guild.voice_client:
            await interaction.response.send_message("already connected", ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True)
        try:
            player = await voice.channel.connect(cls=mafic.Player, self_deaf=True)
        except (asyncio.TimeoutError, discord.ClientException) as e:
            logger.warning(f"failed to join #{voice.channel.name}: {e}")
            await interaction.followup.send("can't get in there", ephemeral=True)
            return

        self.start_session(player)
        await interaction.followup.send(f"joined {voice.channel.mention}", ephemeral=True)

    @app_commands.command(name="leave", description="leave the voice channel")
    @app_commands.guild_only()
    async def leave(self, interaction: discord.Interaction) -> None:
        """End the guild's session and disconnect."""
        session = self.sessions.get(interaction.guild_id)
        if not session:
            await interaction.response.send_message("not connected", ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True)
        await self.engine.teardown(session)
        logger.info(f"left voice ({interaction.user.display_name})")
        await interaction.followup.send("bye", ephemeral=True)

    # =========================================================================
    # Listeners
    # =========================================================================

    @commands.Cog.listener()
    async def on_voice_state_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState
    ):
        """Feed every voice state change to the reaction engine."""
        agent_id = self.bot.user.id
        old = snapshot_from_voice_state(member, before, agent_id)
        new = snapshot_from_voice_state(member, after, agent_id)
        await self.engine.handle(old, new)

    @commands.Cog.listener()
    async def on_session_disconnect(self, session: GuildSession) -> None:
        logger.info(f"guild {session.guild_id}: session ended, bot left voice")

    @commands.Cog.listener()
    async def on_session_empty_channel(self, session: GuildSession) -> None:
        action = "left" if session.options.leave_on_empty else "staying"
        logger.info(f"guild {session.guild_id}: channel stayed empty, {action}")

    @commands.Cog.listener()
    async def on_session_channel_populate(self, session: GuildSession) -> None:
        logger.debug(f"guild {session.guild_id}: channel populated again")


async def setup(bot: commands.Bot) -> None:
    """Load the Presence cog."""
    await bot.add_cog(Presence(bot))
