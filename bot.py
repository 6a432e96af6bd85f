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
Lull
========================================================
VERSION: 1.0.0
========================================================

Voice session keeper for a Lavalink music bot: pauses when the channel
empties, resumes when listeners return, and leaves once nobody comes back.
"""

import asyncio
import logging
import os
import signal
import sys

import discord
import mafic
from discord.ext import commands
from dotenv import load_dotenv
from loguru import logger

from utils.config import ConfigManager, get_config_path, get_lavalink_settings, validate_configuration


# =============================================================================
# LOGGING SETUP
# =============================================================================

# 4-character level names for clean, aligned logs:
# - DEBUG    → [DBUG] - Technical details for debugging
# - INFO     → [INFO] - Normal operation messages
# - NOTICE   → [NOTE] - Startup facts worth seeing even in minimal mode
# - WARNING  → [WARN] - Issues that don't stop operation
# - ERROR    → [FAIL] - Recoverable failures
# - CRITICAL → [CRIT] - Catastrophic failures
LEVEL_NAMES = {
    'DEBUG': 'DBUG',
    'INFO': 'INFO',
    'NOTICE': 'NOTE',
    'WARNING': 'WARN',
    'ERROR': 'FAIL',
    'CRITICAL': 'CRIT',
}

# settings.yaml logging.level -> minimum loguru level
LOG_LEVEL_MAP = {
    'minimal': 'NOTICE',
    'verbose': 'INFO',
    'debug': 'DEBUG',
}

# Libraries whose stdlib logging is routed into loguru
LIBRARY_LOGGERS = ('discord', 'mafic')


class InterceptHandler(logging.Handler):
    """Route stdlib logging records (discord.py, mafic) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside the logging module so loguru reports it
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _format(record) -> str:
    record["extra"]["short_level"] = LEVEL_NAMES.get(record["level"].name, record["level"].name)
    return "[{time:YYYY-MM-DD HH:mm:ss}] [{extra[short_level]}] {name}: {message}\n{exception}"


def setup_logging(level: str) -> None:
    """Configure loguru and stdlib interception for the given verbosity."""
    try:
        logger.level("NOTICE")
    except ValueError:
        logger.level("NOTICE", no=25, color="<cyan><bold>")

    logger.remove()
    logger.add(sys.stderr, level=LOG_LEVEL_MAP.get(level, 'INFO'), format=_format)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    # Reduce library noise unless debugging
    library_level = logging.DEBUG if level == 'debug' else logging.WARNING
    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)


# =============================================================================
# BOT
# =============================================================================

class Lull(commands.Bot):
    """Bot with a Lavalink node pool and a loaded configuration."""

    def __init__(self, config_manager: ConfigManager) -> None:
        intents = discord.Intents.default()
        intents.voice_states = True
        intents.members = True
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
        )
        self.config_manager = config_manager
        self.pool = mafic.NodePool(self)

    async def setup_hook(self) -> None:
        host, port, password = get_lavalink_settings()
        await self.pool.create_node(host=host, port=port, label="MAIN", password=password)
        logger.info(f"lavalink node ready at {host}:{port}")

        await self.load_extension("cogs.presence")

        # Guild sync is instant; global sync can take up to an hour
        if guild_id := os.getenv("GUILD_ID"):
            guild = discord.Object(id=int(guild_id))
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
        else:
            await self.tree.sync()
        logger.debug("commands synced")

    async def on_ready(self) -> None:
        logger.log("NOTICE", f"connected as {self.user}")


# =============================================================================
# MAIN
# =============================================================================

async def main() -> None:
    load_dotenv()
    setup_logging(os.getenv("LOG_LEVEL", "verbose").lower())

    await validate_configuration()

    config_manager = ConfigManager(get_config_path())
    await config_manager.load()
    setup_logging(config_manager.log_level)

    bot = Lull(config_manager)

    # SIGTERM = systemd stop / docker stop; SIGINT surfaces as KeyboardInterrupt
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, lambda: asyncio.create_task(bot.close()))
    except NotImplementedError:
        pass  # Windows

    async with bot:
        await bot.start(os.environ["DISCORD_TOKEN"].strip())


if __name__ == '__main__':
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("stopped by user (Ctrl+C)")
