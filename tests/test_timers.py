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

"""Tests for the per-guild empty-channel countdown registry."""

import asyncio

import pytest

from core.timers import EmptyChannelTimers


class Calls:
    def __init__(self) -> None:
        self.count = 0

    async def __call__(self) -> None:
        self.count += 1


@pytest.mark.asyncio
async def test_countdown_runs_callback_and_releases_slot():
    timers = EmptyChannelTimers()
    calls = Calls()

    task = timers.schedule(1, 0, calls)
    assert timers.has_pending(1)

    await task

    assert calls.count == 1
    assert not timers.has_pending(1)
    assert len(timers) == 0


@pytest.mark.asyncio
async def test_cancel_prevents_callback():
    timers = EmptyChannelTimers()
    calls = Calls()

    task = timers.schedule(1, 50, calls)
    assert timers.cancel(1) is True

    await asyncio.gather(task, return_exceptions=True)

    assert calls.count == 0
    assert timers.get(1) is None


@pytest.mark.asyncio
async def test_cancel_without_pending_returns_false():
    timers = EmptyChannelTimers()
    assert timers.cancel(1) is False


@pytest.mark.asyncio
async def test_schedule_replaces_pending_countdown():
    timers = EmptyChannelTimers()
    first, second = Calls(), Calls()

    old_task = timers.schedule(1, 50, first)
    new_task = timers.schedule(1, 0, second)

    await asyncio.gather(old_task, new_task, return_exceptions=True)

    assert first.count == 0
    assert second.count == 1
    assert len(timers) == 0


@pytest.mark.asyncio
async def test_guilds_are_independent():
    timers = EmptyChannelTimers()
    one, two = Calls(), Calls()

    timers.schedule(1, 50, one)
    task = timers.schedule(2, 0, two)
    timers.cancel(1)

    await task

    assert one.count == 0
    assert two.count == 1


@pytest.mark.asyncio
async def test_negative_delay_fires_immediately():
    timers = EmptyChannelTimers()
    calls = Calls()

    await timers.schedule(1, -500, calls)

    assert calls.count == 1


@pytest.mark.asyncio
async def test_callback_sees_slot_already_released():
    timers = EmptyChannelTimers()
    seen = []

    async def callback():
        seen.append(timers.has_pending(1))

    await timers.schedule(1, 0, callback)

    assert seen == [False]


@pytest.mark.asyncio
async def test_cancel_all():
    timers = EmptyChannelTimers()
    calls = Calls()
    tasks = [timers.schedule(guild, 50, calls) for guild in (1, 2, 3)]

    timers.cancel_all()
    await asyncio.gather(*tasks, return_exceptions=True)

    assert calls.count == 0
    assert len(timers) == 0


@pytest.mark.asyncio
async def test_failing_callback_is_logged_not_raised():
    timers = EmptyChannelTimers()

    async def callback():
        raise RuntimeError("teardown exploded")

    task = timers.schedule(1, 0, callback)
    await task

    assert task.exception() is None
    assert len(timers) == 0
