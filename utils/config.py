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

"""Configuration management for Lull."""

import asyncio
import copy
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable

import yaml
from loguru import logger

from core.session import SessionOptions


# =============================================================================
# DEFAULT SETTINGS SCHEMA
# =============================================================================
# Used for anything settings.yaml leaves out. Environment variables win over
# both (see ENV_OVERRIDES).
#
# Session Settings:
#   pause_on_empty          - Pause playback while nobody is listening
#   leave_on_empty          - Disconnect once the channel stays empty
#   leave_on_empty_cooldown - Milliseconds the channel must stay empty (0+)
#   ignore_deafened         - Deafened members don't count as listeners
#
# Logging Settings (logging.*):
#   level                   - "minimal", "verbose" or "debug"
# =============================================================================

DEFAULT_SETTINGS = {
    "pause_on_empty": True,
    "leave_on_empty": True,
    "leave_on_empty_cooldown": 60000,
    "ignore_deafened": False,
    "logging": {
        "level": "verbose",
    },
}

SETTINGS_HEADER = "# Lull Settings\n# Edit these values to customize behavior\n\n"

LOG_LEVELS = ("minimal", "verbose", "debug")
BOOL_SETTINGS = ("pause_on_empty", "leave_on_empty", "ignore_deafened")


def _to_bool(value: str) -> bool:
    return value.lower() == "true"


def _non_negative(value: str) -> int:
    number = int(value)
    if number < 0:
        logger.warning(f"{number} out of range, clamped to 0 (valid: 0+)")
        return 0
    return number


# ENV_VAR -> (dotted setting key, converter). Converters raise ValueError on junk.
ENV_OVERRIDES: dict[str, tuple[str, Callable[[str], Any]]] = {
    "PAUSE_ON_EMPTY": ("pause_on_empty", _to_bool),
    "LEAVE_ON_EMPTY": ("leave_on_empty", _to_bool),
    "LEAVE_ON_EMPTY_COOLDOWN": ("leave_on_empty_cooldown", _non_negative),
    "IGNORE_DEAFENED": ("ignore_deafened", _to_bool),
    "LOG_LEVEL": ("logging.level", str.lower),
}


def deep_merge(user: dict, defaults: dict) -> dict:
    """Overlay user settings on a copy of the defaults.

    Nested dicts merge key by key. Keys missing from defaults are dropped
    with a warning, so typos in settings.yaml never reach the bot.
    """
    merged = copy.deepcopy(defaults)
    for key, value in user.items():
        if key not in defaults:
            logger.warning(f"unknown config key: {key}")
        elif isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = deep_merge(value, merged[key])
        else:
            merged[key] = value
    return merged


def _set_nested(settings: dict, dotted_key: str, value: Any) -> bool:
    """Assign settings["a"]["b"] for "a.b". False if the path is not a dict."""
    *parents, leaf = dotted_key.split(".")
    target = settings
    for part in parents:
        target = target.setdefault(part, {})
        if not isinstance(target, dict):
            return False
    target[leaf] = value
    return True


def read_settings(path: Path) -> dict:
    """Read settings.yaml merged over DEFAULT_SETTINGS.

    A missing, empty, non-mapping or unparsable file yields plain defaults.
    """
    if not path.exists():
        return copy.deepcopy(DEFAULT_SETTINGS)

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError:
        logger.opt(exception=True).error(f"failed to parse {path.name}, using defaults")
        return copy.deepcopy(DEFAULT_SETTINGS)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        logger.warning(f"{path.name} is not a mapping, using defaults")
        return copy.deepcopy(DEFAULT_SETTINGS)
    return deep_merge(raw, DEFAULT_SETTINGS)


def write_settings(path: Path, data: dict, header: str = "") -> None:
    """Write settings.yaml through a temp file so a crash never leaves half a file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(header)
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        temp_path.replace(path)
    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


class ConfigManager:
    """Settings for the whole bot, loaded once at startup.

    Priority, highest wins: environment variables, settings.yaml,
    DEFAULT_SETTINGS.

    Usage:
        config_manager.get("leave_on_empty")
        config_manager.log_level
        config_manager.session_options()

    Attributes:
        config_path: Directory containing settings.yaml
        settings: Validated settings dict
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self.settings: dict = {}

    @property
    def settings_path(self) -> Path:
        return self.config_path / "settings.yaml"

    async def load(self) -> None:
        """Read settings.yaml (creating it on first run), apply env, validate."""
        path = self.settings_path
        self.settings = await asyncio.to_thread(read_settings, path)

        if not path.exists():
            await asyncio.to_thread(write_settings, path, DEFAULT_SETTINGS, SETTINGS_HEADER)
            logger.info(f"created {path}")

        self._apply_env_overrides()
        self._validate_settings()
        logger.debug(f"config loaded: {self.settings}")

    def _apply_env_overrides(self) -> None:
        """Apply ENV_OVERRIDES. Unparsable values are logged and skipped."""
        for env_key, (setting_key, convert) in ENV_OVERRIDES.items():
            raw = os.getenv(env_key)
            if not raw:
                continue
            try:
                value = convert(raw)
            except (ValueError, TypeError) as e:
                logger.warning(f"invalid env var {env_key}={raw!r}: {e}")
                continue
            if _set_nested(self.settings, setting_key, value):
                logger.debug(f"{env_key} overrides {setting_key}")
            else:
                logger.warning(f"cannot apply {env_key}: {setting_key} is not a section")

    def _validate_settings(self) -> None:
        """Replace or clamp anything the bot can't use, warning each time."""
        for key, default in DEFAULT_SETTINGS.items():
            if self.settings.get(key) is None:
                self.settings[key] = copy.deepcopy(default)

        for key in BOOL_SETTINGS:
            if not isinstance(self.settings[key], bool):
                logger.warning(f"{key}={self.settings[key]!r} is not true/false, using default")
                self.settings[key] = DEFAULT_SETTINGS[key]

        cooldown = self.settings["leave_on_empty_cooldown"]
        if isinstance(cooldown, bool) or not isinstance(cooldown, int):
            logger.warning(f"leave_on_empty_cooldown={cooldown!r} is not a number, using default")
            cooldown = DEFAULT_SETTINGS["leave_on_empty_cooldown"]
        elif cooldown < 0:
            logger.warning(f"leave_on_empty_cooldown={cooldown} out of range, clamped to 0 (valid: 0+)")
            cooldown = 0
        self.settings["leave_on_empty_cooldown"] = cooldown

        section = self.settings["logging"]
        if not isinstance(section, dict):
            logger.warning("logging must be a section, using default")
            section = self.settings["logging"] = copy.deepcopy(DEFAULT_SETTINGS["logging"])
        level = str(section.get("level") or "").lower()
        if level not in LOG_LEVELS:
            logger.warning(f"logging.level={section.get('level')!r} invalid (valid: {', '.join(LOG_LEVELS)})")
            level = DEFAULT_SETTINGS["logging"]["level"]
        section["level"] = level

    def get(self, key: str, default=None) -> Any:
        """Top-level setting value, or default if unset."""
        return self.settings.get(key, default)

    @property
    def log_level(self) -> str:
        return self.get("logging", {}).get("level", DEFAULT_SETTINGS["logging"]["level"])

    def session_options(self) -> SessionOptions:
        """Empty-channel behavior for a new voice session."""
        return SessionOptions(
            pause_on_empty=self.get("pause_on_empty", True),
            leave_on_empty=self.get("leave_on_empty", True),
            leave_on_empty_cooldown_ms=self.get("leave_on_empty_cooldown", 0),
        )


async def validate_configuration() -> None:
    """Check everything the bot needs before it logs in. Exits with 1 on failure.

    - DISCORD_TOKEN present and shaped like a token (three dot-separated parts)
    - Config directory exists or can be created
    - Lavalink answers on /version
    """
    import aiohttp

    errors = []

    token = (os.getenv("DISCORD_TOKEN") or "").strip()
    if not token:
        errors.append("DISCORD_TOKEN not set, add it to .env or the environment")
    elif len(parts := token.split(".")) != 3 or not all(parts):
        errors.append(
            "DISCORD_TOKEN doesn't look like a bot token.\n"
            "Get a fresh one from: https://discord.com/developers/applications"
        )

    config_path = get_config_path()
    if not config_path.exists():
        try:
            config_path.mkdir(parents=True)
            logger.info(f"created config directory: {config_path}")
        except OSError as e:
            errors.append(f"cannot create config directory {config_path}: {e}")

    host, port, password = get_lavalink_settings()
    url = f"http://{host}:{port}/version"
    try:
        async with aiohttp.ClientSession() as http:
            async with http.get(
                url,
                headers={"Authorization": password},
                timeout=aiohttp.ClientTimeout(total=30),
            ) as resp:
                if resp.status == 200:
                    logger.log("NOTICE", f"lavalink version: {await resp.text()}")
                else:
                    errors.append(f"lavalink answered {resp.status} at {url}")
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        errors.append(f"cannot reach lavalink at {host}:{port}: {e}")

    if errors:
        for error in errors:
            logger.error(error)
        sys.exit(1)


def get_config_path() -> Path:
    """Directory holding settings.yaml (CONFIG_PATH env or ./config)."""
    default = Path(__file__).parent.parent / "config"
    return Path(os.getenv("CONFIG_PATH") or str(default))


def get_lavalink_settings() -> tuple[str, int, str]:
    """Lavalink (host, port, password) from the environment."""
    host = os.getenv("LAVALINK_HOST", "127.0.0.1")
    port = int(os.getenv("LAVALINK_PORT", "2333"))
    password = os.getenv("LAVALINK_PASSWORD", "youshallnotpass")
    return host, port, password
