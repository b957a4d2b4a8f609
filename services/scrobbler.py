#!/usr/bin/env python3
# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
BeoSound 5c Scrobbler (beo-scrobbler)

Receives playback events from players and sources (now playing, scrobble,
love) and fans them out to every bound scrobbler (Last.fm, Libre.fm,
ListenBrainz).  Scrobblers whose credentials are rejected are unbound until
the user authenticates them again from the UI.

Port: 8778
"""

import json
import logging
import os
import sys

import aiohttp
from aiohttp import web

# Ensure services/ is on the path for sibling imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from lib.config import cfg
from lib.notifications import Notifications
from lib.scrobble_service import ScrobbleService
from scrobblers import Song, ServiceCallResult, create_scrobblers

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(levelname)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("beo-scrobbler")

SCROBBLER_PORT = 8778


class ScrobblerApp:
    """Owns the HTTP session, notifications and the scrobble service."""

    def __init__(self, scrobbler_factory=create_scrobblers, notifications_factory=Notifications):
        self._scrobbler_factory = scrobbler_factory
        self._notifications_factory = notifications_factory
        self._session: aiohttp.ClientSession | None = None
        self.notifications = notifications_factory(None)
        self.service = ScrobbleService(self.notifications)
        self.notify = True

    async def start(self):
        self._session = aiohttp.ClientSession(
            headers={"User-Agent": "BeoSound5c-Scrobbler/1.0"},
        )
        self.notifications = self._notifications_factory(self._session)
        self.service = ScrobbleService(self.notifications)
        self.notify = bool(cfg("scrobblers", "notify", default=True))

        scrobblers = self._scrobbler_factory(self._session)
        bound = await self.service.register_scrobblers(scrobblers)
        logger.info("Scrobblers ready: %d registered, %d bound",
                    len(scrobblers), len(bound))

    async def stop(self):
        await self.notifications.drain()
        for scrobbler in self.service.get_registered_scrobblers():
            await scrobbler.close()
        if self._session:
            await self._session.close()
            self._session = None
        logger.info("Scrobbler stopped")


def _result_to_json(result) -> dict:
    """Serialize one scrobbler result (ServiceCallResult or error)."""
    if isinstance(result, ServiceCallResult):
        return {"label": result.label, "status": result.status}
    is_auth_error = getattr(result, "is_auth_error", None)
    return {
        "label": getattr(result, "label", None),
        "status": "error",
        "auth_error": bool(callable(is_auth_error) and is_auth_error()),
        "message": str(result),
    }


# ---------------------------------------------------------------------------
# HTTP handlers
# ---------------------------------------------------------------------------
app_instance = ScrobblerApp()
APP_KEY = web.AppKey("scrobbler", ScrobblerApp)


async def _read_json(request: web.Request):
    try:
        data = await request.json()
    except (json.JSONDecodeError, Exception):
        return None
    return data if isinstance(data, dict) else None


async def _handle_song_event(request: web.Request, send, parse_args=None) -> web.Response:
    data = await _read_json(request)
    if data is None:
        return web.json_response({"error": "invalid json"}, status=400)
    try:
        song = Song.from_dict(data)
        args = parse_args(data) if parse_args else ()
    except (ValueError, TypeError, AttributeError) as e:
        return web.json_response({"error": str(e)}, status=400)

    results = await send(request.app[APP_KEY].service, song, *args)
    return web.json_response({
        "status": "ok",
        "results": [_result_to_json(r) for r in results],
    })


async def handle_now_playing(request: web.Request) -> web.Response:
    """POST /scrobbler/nowplaying — a track started playing."""
    return await _handle_song_event(
        request, lambda service, song: service.send_now_playing(song))


async def handle_scrobble(request: web.Request) -> web.Response:
    """POST /scrobbler/scrobble — a track was played long enough to count."""
    return await _handle_song_event(
        request, lambda service, song: service.scrobble(song))


def _loved_flag(data: dict) -> bool:
    loved = data.get("loved", True)
    if not isinstance(loved, bool):
        raise ValueError("loved must be true or false")
    return loved


async def handle_love(request: web.Request) -> web.Response:
    """POST /scrobbler/love — love (loved=true) or unlove a track."""
    return await _handle_song_event(
        request, lambda service, song, loved: service.toggle_love(song, loved),
        parse_args=lambda data: (_loved_flag(data),))


async def handle_auth(request: web.Request) -> web.Response:
    """POST /scrobbler/auth — start authentication for a scrobbler."""
    data = await _read_json(request)
    if data is None:
        return web.json_response({"error": "invalid json"}, status=400)

    app = request.app[APP_KEY]
    scrobbler = app.service.get_scrobbler_by_label(data.get("label", ""))
    if scrobbler is None:
        return web.json_response({"error": "unknown scrobbler"}, status=404)

    notify = bool(data.get("notify", app.notify))
    await app.service.authenticate_scrobbler(scrobbler, notify=notify)
    return web.json_response({
        "status": "ok",
        "label": scrobbler.get_label(),
        "bound": app.service.is_bound(scrobbler),
    })


async def handle_unbind(request: web.Request) -> web.Response:
    """POST /scrobbler/unbind — stop sending events to a scrobbler."""
    data = await _read_json(request)
    if data is None:
        return web.json_response({"error": "invalid json"}, status=400)

    service = request.app[APP_KEY].service
    scrobbler = service.get_scrobbler_by_label(data.get("label", ""))
    if scrobbler is None:
        return web.json_response({"error": "unknown scrobbler"}, status=404)

    service.unbind_scrobbler(scrobbler)
    return web.json_response({"status": "ok", "label": scrobbler.get_label(), "bound": False})


async def handle_resync(request: web.Request) -> web.Response:
    """POST /scrobbler/resync — retry sessions of all registered scrobblers."""
    service = request.app[APP_KEY].service
    bound = await service.register_scrobblers(service.get_registered_scrobblers())
    return web.json_response({"status": "ok", "bound": [s.get_label() for s in bound]})


async def handle_status(request: web.Request) -> web.Response:
    """GET /scrobbler/status — registered scrobblers and whether they are bound."""
    service = request.app[APP_KEY].service
    return web.json_response({
        "scrobblers": [
            {
                "label": s.get_label(),
                "bound": service.is_bound(s),
                "status_url": s.get_status_url(),
            }
            for s in service.get_registered_scrobblers()
        ],
    })


# ---------------------------------------------------------------------------
# App lifecycle
# ---------------------------------------------------------------------------
async def on_startup(app: web.Application):
    await app[APP_KEY].start()


async def on_cleanup(app: web.Application):
    await app[APP_KEY].stop()


@web.middleware
async def cors_middleware(request, handler):
    if request.method == "OPTIONS":
        resp = web.Response()
    else:
        resp = await handler(request)
    resp.headers["Access-Control-Allow-Origin"] = "*"
    resp.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    resp.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return resp


def create_app(scrobbler_app: ScrobblerApp | None = None) -> web.Application:
    app = web.Application(middlewares=[cors_middleware])
    app[APP_KEY] = scrobbler_app or app_instance
    app.router.add_post("/scrobbler/nowplaying", handle_now_playing)
    app.router.add_post("/scrobbler/scrobble", handle_scrobble)
    app.router.add_post("/scrobbler/love", handle_love)
    app.router.add_post("/scrobbler/auth", handle_auth)
    app.router.add_post("/scrobbler/unbind", handle_unbind)
    app.router.add_post("/scrobbler/resync", handle_resync)
    app.router.add_get("/scrobbler/status", handle_status)
    app.on_startup.append(on_startup)
    app.on_cleanup.append(on_cleanup)
    return app


if __name__ == "__main__":
    app = create_app()
    port = int(cfg("scrobblers", "port", default=SCROBBLER_PORT))
    web.run_app(app, host="0.0.0.0", port=port, print=lambda msg: logger.info(msg))
