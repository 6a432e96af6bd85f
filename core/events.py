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

"""Session lifecycle events."""

from enum import Enum
from typing import Any, Callable

from loguru import logger


class SessionEvent(Enum):
    """Lifecycle events emitted by the session reaction engine.

    Values are discord.py event names: a Cog receives them through
    `@commands.Cog.listener()` methods named `on_<value>(session)`.
    """
    DISCONNECT = "session_disconnect"
    EMPTY_CHANNEL = "session_empty_channel"
    CHANNEL_POPULATE = "session_channel_populate"


class SessionEvents:
    """Event sink for session lifecycle events.

    Wraps a dispatch callable, normally `bot.dispatch`, so the engine does
    not depend on the bot object itself.
    """

    def __init__(self, dispatch: Callable[..., Any]) -> None:
        self._dispatch = dispatch

    def emit(self, event: SessionEvent, session) -> None:
        logger.debug(f"guild {session.guild_id}: emitting {event.value}")
        self._dispatch(event.value, session)
