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

"""Shared fixtures: in-memory player, voice directory and event recorder."""

import discord
import pytest

from core.engine import SessionReactionEngine
from core.events import SessionEvents
from core.presence import ChannelKind, PresenceSnapshot
from core.session import SessionManager, SessionOptions
from core.timers import EmptyChannelTimers

GUILD = 1
AGENT = 999
CHANNEL_A = 100
CHANNEL_B = 200
CHANNEL_C = 300


class FakePlayer:
    """Stands in for mafic.Player."""

    def __init__(self, connected: bool = True) -> None:
        self.connected = connected
        self.pause_calls: list[bool] = []
        self.disconnect_calls = 0
        self.fail_disconnect = False
        self.fail_pause = False

    @property
    def paused(self) -> bool:
        return bool(self.pause_calls) and self.pause_calls[-1]

    async def pause(self, pause: bool = True) -> None:
        if self.fail_pause:
            raise discord.ClientException("node unavailable")
        self.pause_calls.append(pause)

    async def disconnect(self, *, force: bool = False) -> None:
        self.disconnect_calls += 1
        if self.fail_disconnect:
            raise discord.ClientException("already disconnected")
        self.connected = False


class FakeDirectory:
    """Occupancy by channel id; listeners exclude the bot."""

    def __init__(self) -> None:
        self.listeners: dict[int, int] = {}
        self.speak_requests = 0
        self.fail_speak = False

    def set(self, channel_id: int, count: int) -> None:
        self.listeners[channel_id] = count

    def is_channel_empty(self, guild_id: int, channel_id: int | None) -> bool:
        return self.listeners.get(channel_id, 0) == 0

    async def request_to_speak(self, guild_id: int) -> None:
        self.speak_requests += 1
        if self.fail_speak:
            raise discord.ClientException("not a stage speaker")


class EventRecorder:
    """Collects (event_name, session) pairs in place of bot.dispatch."""

    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []

    def __call__(self, name: str, *args) -> None:
        self.events.append((name, args[0]))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


@pytest.fixture
def directory():
    return FakeDirectory()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def sessions():
    return SessionManager()


@pytest.fixture
def timers():
    return EmptyChannelTimers()


@pytest.fixture
def engine(sessions, timers, directory, recorder):
    return SessionReactionEngine(sessions, timers, directory, SessionEvents(recorder))


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def options():
    return SessionOptions(pause_on_empty=False, leave_on_empty=True, leave_on_empty_cooldown_ms=0)


@pytest.fixture
def session(sessions, player, options, directory):
    """Bot connected to CHANNEL_A with one listener."""
    directory.set(CHANNEL_A, 1)
    return sessions.create(GUILD, CHANNEL_A, player, options)


@pytest.fixture
def snap():
    """Factory for presence snapshots."""
    def make(
        channel: int | None = None,
        participant: int = 1,
        guild: int = GUILD,
        kind: ChannelKind | None = None,
        muted: bool | None = False,
        suppressed: bool | None = False,
    ) -> PresenceSnapshot:
        if kind is None:
            kind = ChannelKind.VOICE if channel is not None else ChannelKind.NONE
        return PresenceSnapshot(
            guild_id=guild,
            participant_id=participant,
            channel_id=channel,
            is_agent=participant == AGENT,
            server_muted=muted,
            suppressed=suppressed,
            channel_kind=kind,
        )
    return make
