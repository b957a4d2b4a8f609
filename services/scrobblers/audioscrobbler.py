# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Audioscrobbler 2.0 API client — shared by Last.fm and Libre.fm.

Authentication is the desktop-app token flow:
  1. get_auth_url()  → auth.getToken, returns the page where the user approves
  2. get_session()   → auth.getSession exchanges the approved token for a
                       session key, which is kept in the session store
  3. submissions are signed with the session key (sk)

Every API call is signed: md5 over the sorted "<key><value>" pairs followed
by the shared secret.  API error codes 4, 9, 14 and 15 mean the credentials
are unusable and surface as auth errors.
"""

import asyncio
import hashlib
import json
import logging
import urllib.parse

import aiohttp

from .base import Scrobbler, ScrobblerError, ServiceCallResult, Song
from .session_store import delete_session, load_session, save_session

# Authentication failed, invalid session key, unauthorized token, token expired
AUTH_ERROR_CODES = {4, 9, 14, 15}

# Tracks shorter than this are not scrobbled (Audioscrobbler rule)
MIN_SCROBBLE_DURATION = 30

REQUEST_TIMEOUT = 10


class AudioScrobbler(Scrobbler):
    # ── Subclass must set these ──
    id: str = ""          # config key, e.g. "lastfm"
    label: str = ""
    api_url: str = ""
    auth_url: str = ""
    status_url: str = ""

    def __init__(self, session: aiohttp.ClientSession, api_key: str, api_secret: str):
        self._http_session = session
        self.api_key = api_key
        self.api_secret = api_secret
        self.log = logging.getLogger(f"beo-scrobbler.{self.id}")
        self._token: str | None = None
        self._session_key: str | None = None
        self._session_lock = asyncio.Lock()
        self.user_name: str | None = None

    # ── Authentication ──

    async def get_auth_url(self) -> str:
        # A new auth flow invalidates whatever session we had
        self._session_key = None
        body = await self._request({"method": "auth.getToken"})
        token = body.get("token")
        if not token:
            raise ScrobblerError("auth.getToken returned no token", self.label)
        self._token = token
        query = urllib.parse.urlencode({"api_key": self.api_key, "token": token})
        return f"{self.auth_url}?{query}"

    async def get_session(self) -> str:
        if self._session_key:
            return self._session_key

        # A pending token can be exchanged only once
        async with self._session_lock:
            if self._session_key:
                return self._session_key

            loop = asyncio.get_running_loop()
            stored = await loop.run_in_executor(None, load_session, self.label)
            if stored:
                self._session_key = stored["session_key"]
                self.user_name = stored.get("name")
                self.log.info("%s session restored (user: %s)", self.label, self.user_name)
                return self._session_key

            if not self._token:
                raise ScrobblerError.auth("Not authenticated", self.label)

            body = await self._request({"method": "auth.getSession", "token": self._token})
            session = body.get("session") or {}
            key = session.get("key")
            if not key:
                raise ScrobblerError.auth("auth.getSession returned no session", self.label)

            self._token = None
            self._session_key = key
            self.user_name = session.get("name")
            await loop.run_in_executor(None, save_session, self.label, key, self.user_name)
            self.log.info("%s session created (user: %s)", self.label, self.user_name)
            return key

    def get_status_url(self) -> str:
        return self.status_url

    # ── Submissions ──

    async def send_now_playing(self, song: Song) -> ServiceCallResult:
        params = {"method": "track.updateNowPlaying", **self._track_params(song)}
        await self._signed_post(params)
        return ServiceCallResult(self.label)

    async def scrobble(self, song: Song) -> ServiceCallResult:
        if song.duration is not None and song.duration < MIN_SCROBBLE_DURATION:
            self.log.info("Not scrobbling %s - %s: too short (%ds)",
                          song.artist, song.track, song.duration)
            return ServiceCallResult(self.label, ServiceCallResult.IGNORED)

        params = {
            "method": "track.scrobble",
            "timestamp": str(song.timestamp),
            **self._track_params(song),
        }
        body = await self._signed_post(params)
        attr = (body.get("scrobbles") or {}).get("@attr") or {}
        if int(attr.get("ignored", 0) or 0) > 0:
            return ServiceCallResult(self.label, ServiceCallResult.IGNORED)
        return ServiceCallResult(self.label)

    async def toggle_love(self, song: Song, flag: bool) -> ServiceCallResult:
        params = {
            "method": "track.love" if flag else "track.unlove",
            "artist": song.artist,
            "track": song.track,
        }
        await self._signed_post(params)
        return ServiceCallResult(self.label)

    # ── API plumbing ──

    @staticmethod
    def _track_params(song: Song) -> dict:
        params = {"artist": song.artist, "track": song.track}
        if song.album:
            params["album"] = song.album
        if song.album_artist:
            params["albumArtist"] = song.album_artist
        if song.duration:
            params["duration"] = str(song.duration)
        if song.mbid:
            params["mbid"] = song.mbid
        return params

    def sign(self, params: dict) -> str:
        """Compute api_sig for *params* (format/callback are not signed)."""
        raw = "".join(
            f"{k}{params[k]}" for k in sorted(params) if k not in ("format", "callback")
        )
        return hashlib.md5((raw + self.api_secret).encode("utf-8")).hexdigest()

    async def _signed_post(self, params: dict) -> dict:
        session_key = await self.get_session()
        return await self._request({**params, "sk": session_key}, post=True)

    async def _request(self, params: dict, post: bool = False) -> dict:
        params = {**params, "api_key": self.api_key}
        params["api_sig"] = self.sign(params)
        params["format"] = "json"
        timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)

        try:
            if post:
                request = self._http_session.post(self.api_url, data=params, timeout=timeout)
            else:
                request = self._http_session.get(self.api_url, params=params, timeout=timeout)
            async with request as resp:
                try:
                    body = await resp.json(content_type=None)
                except (json.JSONDecodeError, aiohttp.ContentTypeError):
                    raise ScrobblerError(
                        f"Invalid response from {self.label} (HTTP {resp.status})", self.label)
        except asyncio.TimeoutError as e:
            raise ScrobblerError(f"{self.label} timed out", self.label) from e
        except aiohttp.ClientError as e:
            raise ScrobblerError(f"{self.label} unreachable: {e}", self.label) from e

        if not isinstance(body, dict):
            raise ScrobblerError(f"Unexpected response from {self.label}", self.label)
        if "error" in body:
            await self._raise_api_error(body, params.get("sk"))
        return body

    async def _raise_api_error(self, body: dict, session_key: str | None = None):
        code = int(body.get("error", 0))
        message = body.get("message") or f"error {code}"
        if code in AUTH_ERROR_CODES:
            self.log.error("%s rejected credentials (%d): %s", self.label, code, message)
            # Forget only the key this request was signed with
            if session_key and session_key == self._session_key:
                self._session_key = None
                loop = asyncio.get_running_loop()
                await loop.run_in_executor(None, delete_session, self.label)
            raise ScrobblerError.auth(message, self.label)
        self.log.warning("%s API error %d: %s", self.label, code, message)
        raise ScrobblerError(message, self.label)
