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
Presence Transition Classifier

Turns one (old, new) pair of presence snapshots into the set of named
transitions it represents. Predicates are independent: a single notification
can be, for example, both an OCCUPANT_JOINED and a CHANNEL_SWITCH.
"""

from enum import Enum

from core.presence import PresenceSnapshot


class Transition(Enum):
    """Named presence transitions the session reacts to."""
    AGENT_LEFT = "agent_left"            # Bot left voice entirely
    AGENT_JOINED = "agent_joined"        # Bot joined voice from nowhere
    OCCUPANT_LEFT = "occupant_left"      # Anyone left voice from the bound channel
    OCCUPANT_JOINED = "occupant_joined"  # Anyone is now in the bound channel
    CHANNEL_SWITCH = "channel_switch"    # Anyone moved between two channels


# Handler order used by the engine. AGENT_LEFT is not listed: it is checked
# before anything else and ends processing of the notification. The pause
# policy runs after that check and before this sequence.
DISPATCH_ORDER = (
    Transition.AGENT_JOINED,
    Transition.OCCUPANT_LEFT,
    Transition.OCCUPANT_JOINED,
    Transition.CHANNEL_SWITCH,
)


def classify(
    old: PresenceSnapshot,
    new: PresenceSnapshot,
    bound_channel_id: int | None,
) -> frozenset[Transition]:
    """Evaluate every transition predicate for one notification.

    Args:
        old: Presence before the change
        new: Presence after the change
        bound_channel_id: Channel the guild's session is bound to

    Returns:
        Set of transitions that apply (may be empty)
    """
    found = set()

    if old.in_channel and not new.in_channel and new.is_agent:
        # Session is going away, nothing else matters
        return frozenset({Transition.AGENT_LEFT})

    if not old.in_channel and new.in_channel and new.is_agent:
        found.add(Transition.AGENT_JOINED)

    if not new.in_channel and old.in_channel and old.channel_id == bound_channel_id:
        found.add(Transition.OCCUPANT_LEFT)

    if new.in_channel and new.channel_id == bound_channel_id:
        found.add(Transition.OCCUPANT_JOINED)

    if old.in_channel and new.in_channel and old.channel_id != new.channel_id:
        found.add(Transition.CHANNEL_SWITCH)

    return frozenset(found)
