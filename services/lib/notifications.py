# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
User-facing scrobbler notifications.

Pushes prompts to UI clients via input.py's webhook API, the same channel
sources use for their broadcasts.  Calls return immediately; delivery runs as
a task and failures are only logged.

Events:
    scrobbler_auth            {"label", "url"}         — ask user to grant access
    scrobbler_sign_in_error   {"label", "status_url"}  — auth could not start
"""

import asyncio
import logging

import aiohttp

logger = logging.getLogger("beo-scrobbler.notifications")

INPUT_WEBHOOK_URL = "http://localhost:8767/webhook"


class Notifications:

    def __init__(self, session: aiohttp.ClientSession | None, webhook_url: str = INPUT_WEBHOOK_URL):
        self._session = session
        self.webhook_url = webhook_url
        self._pending: set[asyncio.Task] = set()

    def show_authenticate(self, label: str, auth_url: str):
        """Ask the user to open *auth_url* and grant access to *label*."""
        logger.info("Asking user to authenticate %s", label)
        self._schedule("scrobbler_auth", {"label": label, "url": auth_url})

    def show_sign_in_error(self, label: str, status_url: str):
        """Tell the user that signing in to *label* failed."""
        logger.info("Sign-in error for %s (status: %s)", label, status_url)
        self._schedule("scrobbler_sign_in_error", {"label": label, "status_url": status_url})

    async def drain(self):
        """Wait for all pending deliveries (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*self._pending)

    def _schedule(self, event_type: str, data: dict):
        task = asyncio.ensure_future(self._broadcast(event_type, data))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _broadcast(self, event_type: str, data: dict):
        """Broadcast an event to UI clients via input.py's webhook API."""
        if not self._session:
            logger.warning("No HTTP session, dropping %s", event_type)
            return
        try:
            async with self._session.post(
                self.webhook_url,
                json={"command": "broadcast", "params": {"type": event_type, "data": data}},
                timeout=aiohttp.ClientTimeout(total=5),
            ) as resp:
                logger.info("→ input.py: broadcast %s (HTTP %d)", event_type, resp.status)
        except Exception as e:
            logger.error("Failed to broadcast %s: %s", event_type, e)
