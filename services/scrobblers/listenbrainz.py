# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
ListenBrainz scrobbler.

ListenBrainz has no interactive token exchange: the user copies their user
token from the settings page into LISTENBRAINZ_TOKEN.  get_session() checks
that token against /1/validate-token; HTTP 401 from any endpoint means the
token was revoked.

Loving a track goes through recording feedback, which needs a MusicBrainz
recording id (Song.mbid).
"""

import asyncio
import logging

import aiohttp

from .base import Scrobbler, ScrobblerError, ServiceCallResult, Song

log = logging.getLogger("beo-scrobbler.listenbrainz")

API_URL = "https://api.listenbrainz.org"
SETTINGS_URL = "https://listenbrainz.org/settings/"
STATUS_URL = "https://listenbrainz.org/"
SUBMISSION_CLIENT = "BeoSound 5c"
REQUEST_TIMEOUT = 10


class ListenBrainzScrobbler(Scrobbler):
    id = "listenbrainz"
    label = "ListenBrainz"

    def __init__(self, session: aiohttp.ClientSession, token: str | None, api_url: str = API_URL):
        self._http_session = session
        self.token = token
        self.api_url = api_url.rstrip("/")
        self._validated = False
        self.user_name: str | None = None

    # ── Authentication ──

    async def get_session(self):
        if self._validated:
            return self.user_name
        if not self.token:
            raise ScrobblerError.auth("No ListenBrainz token configured", self.label)

        body = await self._request("GET", "/1/validate-token")
        if not body.get("valid"):
            raise ScrobblerError.auth(body.get("message") or "Token invalid", self.label)
        self._validated = True
        self.user_name = body.get("user_name")
        log.info("ListenBrainz token valid (user: %s)", self.user_name)
        return self.user_name

    async def get_auth_url(self) -> str:
        if not self.token:
            raise ScrobblerError("No ListenBrainz token configured", self.label)
        self._validated = False
        return SETTINGS_URL

    def get_status_url(self) -> str:
        return STATUS_URL

    # ── Submissions ──

    async def send_now_playing(self, song: Song) -> ServiceCallResult:
        await self._submit("playing_now", {"track_metadata": self._track_metadata(song)})
        return ServiceCallResult(self.label)

    async def scrobble(self, song: Song) -> ServiceCallResult:
        await self._submit("single", {
            "listened_at": song.timestamp,
            "track_metadata": self._track_metadata(song),
        })
        return ServiceCallResult(self.label)

    async def toggle_love(self, song: Song, flag: bool) -> ServiceCallResult:
        if not song.mbid:
            raise ScrobblerError("Loving needs a MusicBrainz recording id", self.label)
        await self._request("POST", "/1/feedback/recording-feedback", {
            "recording_mbid": song.mbid,
            "score": 1 if flag else 0,
        })
        return ServiceCallResult(self.label)

    # ── API plumbing ──

    @staticmethod
    def _track_metadata(song: Song) -> dict:
        info = {"submission_client": SUBMISSION_CLIENT}
        if song.duration:
            info["duration_ms"] = song.duration * 1000
        if song.mbid:
            info["recording_mbid"] = song.mbid
        metadata = {
            "artist_name": song.artist,
            "track_name": song.track,
            "additional_info": info,
        }
        if song.album:
            metadata["release_name"] = song.album
        return metadata

    async def _submit(self, listen_type: str, listen: dict):
        await self._request("POST", "/1/submit-listens", {
            "listen_type": listen_type,
            "payload": [listen],
        })

    async def _request(self, method: str, path: str, payload: dict | None = None) -> dict:
        if not self.token:
            raise ScrobblerError.auth("No ListenBrainz token configured", self.label)
        try:
            async with self._http_session.request(
                method,
                f"{self.api_url}{path}",
                json=payload,
                headers={"Authorization": f"Token {self.token}"},
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT),
            ) as resp:
                if resp.status == 401:
                    self._validated = False
                    log.error("ListenBrainz rejected token (HTTP 401)")
                    raise ScrobblerError.auth("Invalid ListenBrainz token", self.label)
                try:
                    body = await resp.json(content_type=None)
                except ValueError:
                    body = None
                if resp.status != 200:
                    message = (body or {}).get("error") if isinstance(body, dict) else None
                    log.warning("ListenBrainz %s %s failed (HTTP %d): %s",
                                method, path, resp.status, message)
                    raise ScrobblerError(
                        message or f"HTTP {resp.status}", self.label)
        except asyncio.TimeoutError as e:
            raise ScrobblerError("ListenBrainz timed out", self.label) from e
        except aiohttp.ClientError as e:
            raise ScrobblerError(f"ListenBrainz unreachable: {e}", self.label) from e
        return body if isinstance(body, dict) else {}
