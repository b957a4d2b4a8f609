# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Shared configuration loader for the BeoSound 5c scrobbler service.

Loads a single JSON config file per device.  Search order:
  1. /etc/beosound5c/config.json   (deployed by deploy.sh)
  2. config.json                    (CWD — handy for local dev)
  3. ../config/default.json         (repo fallback)

Secrets (LASTFM_API_SECRET, LISTENBRAINZ_TOKEN, etc.) stay in environment
variables, loaded from /etc/beosound5c/secrets.env by systemd EnvironmentFile.

Usage:
    from lib.config import DEFAULT_SCROBBLERS, cfg

    enabled = cfg("scrobblers", "enabled", default=DEFAULT_SCROBBLERS)
    notify  = cfg("scrobblers", "notify", default=True)
    port    = cfg("scrobblers", "port", default=8778)
"""

import json
import logging
import os

logger = logging.getLogger(__name__)

_config: dict | None = None

_SEARCH_PATHS = [
    "/etc/beosound5c/config.json",
    "config.json",
    os.path.join(os.path.dirname(__file__), "..", "..", "config", "default.json"),
]

KNOWN_SCROBBLERS = ("lastfm", "librefm", "listenbrainz")

# Enabled when config.json has no scrobblers.enabled list
DEFAULT_SCROBBLERS = ["lastfm"]


def _validate(config: dict, path: str) -> None:
    """Warn about missing or suspicious config values."""
    if not config.get("device"):
        logger.warning("Config %s: missing 'device' name", path)
    section = config.get("scrobblers")
    if section is None:
        logger.warning("Config %s: missing 'scrobblers' section — enabling %s",
                       path, ", ".join(DEFAULT_SCROBBLERS))
        return
    if not isinstance(section, dict):
        logger.error("Config %s: 'scrobblers' must be an object", path)
        return
    enabled = section.get("enabled", DEFAULT_SCROBBLERS)
    if not isinstance(enabled, list):
        logger.error("Config %s: scrobblers.enabled must be a list", path)
        return
    for label in enabled:
        if str(label).lower() not in KNOWN_SCROBBLERS:
            logger.warning("Config %s: unknown scrobbler '%s'", path, label)


def load_config() -> dict:
    """Load config from the first JSON file found. Cached after first call."""
    global _config
    if _config is not None:
        return _config

    for path in _SEARCH_PATHS:
        try:
            with open(path) as f:
                _config = json.load(f)
                logger.info("Config loaded from %s", path)
                _validate(_config, path)
                return _config
        except FileNotFoundError:
            continue
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in %s: %s", path, e)
            continue

    logger.warning("No config.json found — using empty config")
    _config = {}
    return _config


def cfg(section: str, key: str | None = None, *, default=None):
    """Read a config value.

    cfg("device")                          → config["device"]
    cfg("scrobblers", "enabled")           → config["scrobblers"]["enabled"]
    cfg("scrobblers", "port", default=8778) → config["scrobblers"]["port"] or 8778
    """
    config = load_config()
    val = config.get(section)
    if key is None:
        return val if val is not None else default
    if isinstance(val, dict):
        return val.get(key, default)
    return default


def set_config(config: dict):
    """Replace the cached config (tests and embedded use)."""
    global _config
    _config = config


def reload_config():
    """Force re-read from disk (for testing or hot-reload)."""
    global _config
    _config = None
    return load_config()
