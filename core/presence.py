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

"""Voice presence snapshots."""

from dataclasses import dataclass
from enum import Enum

import discord


class ChannelKind(Enum):
    """Kind of voice channel a participant is in.

    NONE: Participant is not in any voice channel
    VOICE: Regular voice channel
    STAGE: Stage channel (speakers are suppressed until invited)
    """
    NONE = 0
    VOICE = 1
    STAGE = 2


@dataclass(frozen=True)
class PresenceSnapshot:
    """One participant's voice presence at one instant.

    Built from a discord.VoiceState so the rest of the core never touches
    discord objects directly. is_agent is True when the participant is the
    bot itself.
    """
    guild_id: int
    participant_id: int
    channel_id: int | None = None
    is_agent: bool = False
    server_muted: bool | None = None
    suppressed: bool | None = None
    channel_kind: ChannelKind = ChannelKind.NONE

    @property
    def in_channel(self) -> bool:
        return self.channel_id is not None


def channel_kind_of(channel) -> ChannelKind:
    """Map a discord channel (or None) to a ChannelKind."""
    if channel is None:
        return ChannelKind.NONE
    if channel.type == discord.ChannelType.stage_voice:
        return ChannelKind.STAGE
    return ChannelKind.VOICE


def snapshot_from_voice_state(
    member: discord.Member,
    state: discord.VoiceState,
    agent_id: int,
) -> PresenceSnapshot:
    """Build a PresenceSnapshot from a member's before/after voice state.

    Args:
        member: Member whose voice state changed
        state: Either the `before` or `after` VoiceState from on_voice_state_update
        agent_id: The bot's own user ID

    Returns:
        Immutable snapshot of the member's presence
    """
    channel = state.channel
    return PresenceSnapshot(
        guild_id=member.guild.id,
        participant_id=member.id,
        channel_id=channel.id if channel else None,
        is_agent=member.id == agent_id,
        server_muted=state.mute,
        suppressed=state.suppress,
        channel_kind=channel_kind_of(channel),
    )
