# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
ScrobbleService — fans playback events out to every bound scrobbler.

Scrobblers move through two collections, both keyed by label:

    registered   every scrobbler the service knows about (never shrinks)
    bound        scrobblers with a usable session (eligible for events)

    UNREGISTERED --register--> registered
    registered --get_session() ok | bind_scrobbler()--> bound
    bound --unbind_scrobbler() | auth error on submit--> registered

Failures of a single scrobbler never fail a batch: session errors are logged,
auth-URL errors go to the user via notifications, submission errors come back
as that scrobbler's entry in the result list.

Usage:
    service = ScrobbleService(notifications)
    await service.register_scrobblers(create_scrobblers(session))
    results = await service.scrobble(song)
"""

import asyncio
import logging

from .browser import open_tab as _open_tab

NOW_PLAYING = "now playing"
SCROBBLE = "scrobble"
LOVE = "love"


class ScrobbleService:
    """Registry of scrobblers plus the broadcast of playback events."""

    def __init__(self, notifications, open_tab=_open_tab, log: logging.Logger | None = None):
        self._notifications = notifications
        self._open_tab = open_tab
        self._log = log or logging.getLogger("beo-scrobbler")
        self._registered: dict[str, object] = {}
        self._bound: dict[str, object] = {}

    # ── Registration ──

    def _register(self, scrobbler):
        label = scrobbler.get_label()
        if label not in self._registered:
            self._log.info("Register %s scrobbler", label)
            self._registered[label] = scrobbler

    async def _bind_if_session(self, scrobbler):
        try:
            await scrobbler.get_session()
        except Exception as e:
            self._log.warning("Unable to bind %s: %s", scrobbler.get_label(), e)
            return
        self.bind_scrobbler(scrobbler)

    async def register_scrobblers(self, scrobblers) -> list:
        """Register scrobblers and bind those that already hold a session.

        Session lookups run concurrently.  Returns the bound scrobblers once
        every lookup has settled.
        """
        for scrobbler in scrobblers:
            self._register(scrobbler)
        await asyncio.gather(*(self._bind_if_session(s) for s in scrobblers))
        return self.get_bound_scrobblers()

    def bind_scrobbler(self, scrobbler):
        label = scrobbler.get_label()
        if label not in self._bound:
            self._bound[label] = scrobbler
            self._log.info("Bind %s scrobbler", label)

    def unbind_scrobbler(self, scrobbler):
        label = scrobbler.get_label()
        if self._bound.pop(label, None) is not None:
            self._log.info("Unbind %s scrobbler", label)
        else:
            self._log.error("%s is not bound", label)

    # ── Authentication ──

    async def authenticate_scrobbler(self, scrobbler, notify: bool = True):
        """Ask the user to grant access for the service behind *scrobbler*.

        The scrobbler is bound as soon as an auth URL exists; a missing
        session surfaces later as an auth error and unbinds it again.
        """
        label = scrobbler.get_label()
        try:
            auth_url = await scrobbler.get_auth_url()
        except Exception as e:
            self._log.warning("Unable to get auth URL for %s: %s", label, e)
            self._notifications.show_sign_in_error(label, scrobbler.get_status_url())
            return

        self.bind_scrobbler(scrobbler)
        if notify:
            self._notifications.show_authenticate(label, auth_url)
        else:
            self._open_tab(auth_url)

    # ── Broadcast ──

    async def _call(self, scrobbler, action, song, flag):
        try:
            if action == NOW_PLAYING:
                return await scrobbler.send_now_playing(song)
            if action == SCROBBLE:
                return await scrobbler.scrobble(song)
            return await scrobbler.toggle_love(song, flag)
        except Exception as e:
            # Errors become this scrobbler's result entry
            is_auth_error = getattr(e, "is_auth_error", None)
            if callable(is_auth_error) and is_auth_error():
                self.unbind_scrobbler(scrobbler)
            else:
                self._log.warning("%s %s failed: %s", scrobbler.get_label(), action, e)
            return e

    async def _broadcast(self, action, song, flag=None) -> list:
        scrobblers = list(self._bound.values())
        self._log.info('Send "%s" request: %d', action, len(scrobblers))
        return list(await asyncio.gather(
            *(self._call(s, action, song, flag) for s in scrobblers)))

    async def send_now_playing(self, song) -> list:
        """Send a now playing notification to each bound scrobbler."""
        return await self._broadcast(NOW_PLAYING, song)

    async def scrobble(self, song) -> list:
        """Scrobble *song* to each bound scrobbler."""
        return await self._broadcast(SCROBBLE, song)

    async def toggle_love(self, song, flag: bool) -> list:
        """Set the love status of *song* on each bound scrobbler."""
        return await self._broadcast(LOVE, song, flag)

    # ── Lookup ──

    def get_registered_scrobblers(self) -> list:
        return list(self._registered.values())

    def get_bound_scrobblers(self) -> list:
        return list(self._bound.values())

    def get_scrobbler_by_label(self, label: str):
        for scrobbler in self._registered.values():
            if scrobbler.get_label() == label:
                return scrobbler
        return None

    def is_bound(self, scrobbler) -> bool:
        label = scrobbler if isinstance(scrobbler, str) else scrobbler.get_label()
        return label in self._bound
