"""
Scrobblers — clients for remote play-tracking services.

Each scrobbler implements the ``Scrobbler`` interface (see base.py) and is
driven by lib.scrobble_service.ScrobbleService.  The factory function
``create_scrobblers`` reads config.json plus secrets from the environment and
returns the enabled scrobblers.

Supported scrobblers:
  - ``lastfm``        – Last.fm (LASTFM_API_KEY, LASTFM_API_SECRET)
  - ``librefm``       – Libre.fm (LIBREFM_API_KEY, LIBREFM_API_SECRET)
  - ``listenbrainz``  – ListenBrainz (LISTENBRAINZ_TOKEN)
"""

import logging
import os

import aiohttp

from lib.config import DEFAULT_SCROBBLERS, cfg
from .base import Scrobbler, ScrobblerError, ServiceCallResult, Song
from .lastfm import LastFmScrobbler
from .librefm import LibreFmScrobbler
from .listenbrainz import ListenBrainzScrobbler

logger = logging.getLogger("beo-scrobbler")

__all__ = [
    "Scrobbler",
    "ScrobblerError",
    "ServiceCallResult",
    "Song",
    "LastFmScrobbler",
    "LibreFmScrobbler",
    "ListenBrainzScrobbler",
    "create_scrobblers",
]


def _audioscrobbler(cls, session, env_prefix):
    api_key = os.getenv(f"{env_prefix}_API_KEY", "")
    api_secret = os.getenv(f"{env_prefix}_API_SECRET", "")
    if not api_key or not api_secret:
        logger.warning("%s enabled but %s_API_KEY/%s_API_SECRET not set — skipped",
                       cls.label, env_prefix, env_prefix)
        return None
    return cls(session, api_key, api_secret)


def create_scrobblers(session: aiohttp.ClientSession) -> list[Scrobbler]:
    """Create the scrobblers listed in config.json "scrobblers.enabled".

    Config:
      enabled           – list of scrobbler ids, default ["lastfm"]
      listenbrainz_url  – API root for self-hosted ListenBrainz (optional)
    """
    enabled = cfg("scrobblers", "enabled", default=DEFAULT_SCROBBLERS)
    scrobblers = []
    for scrobbler_id in enabled:
        scrobbler_id = str(scrobbler_id).lower()
        if scrobbler_id == "lastfm":
            scrobbler = _audioscrobbler(LastFmScrobbler, session, "LASTFM")
        elif scrobbler_id == "librefm":
            scrobbler = _audioscrobbler(LibreFmScrobbler, session, "LIBREFM")
        elif scrobbler_id == "listenbrainz":
            token = os.getenv("LISTENBRAINZ_TOKEN", "")
            api_url = cfg("scrobblers", "listenbrainz_url",
                          default="https://api.listenbrainz.org")
            if not token:
                logger.warning("ListenBrainz enabled but LISTENBRAINZ_TOKEN not set — "
                               "authentication will be required")
            scrobbler = ListenBrainzScrobbler(session, token or None, api_url)
        else:
            logger.warning("Unknown scrobbler '%s' — skipped", scrobbler_id)
            continue
        if scrobbler is not None:
            logger.info("Scrobbler: %s", scrobbler.label)
            scrobblers.append(scrobbler)
    return scrobblers
