# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Abstract base class for BeoSound 5c scrobblers.

A scrobbler is a client for one remote tracking service (Last.fm, Libre.fm,
ListenBrainz, ...).  Every scrobbler must be able to obtain a session, build an
authorization URL, and submit now-playing / scrobble / love events.

Submission methods return a ServiceCallResult on success and raise
ScrobblerError on failure.  ScrobblerError.is_auth_error() tells the
ScrobbleService whether the failure means the credentials are no longer valid.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import time


@dataclass(frozen=True)
class Song:
    """A played track.  Only scrobblers look inside; the service passes it on."""
    artist: str
    track: str
    album: str | None = None
    album_artist: str | None = None
    duration: int | None = None          # seconds
    timestamp: int = field(default_factory=lambda: int(time.time()))
    mbid: str | None = None              # MusicBrainz recording id

    @classmethod
    def from_dict(cls, data: dict) -> "Song":
        """Build a Song from a JSON payload.  Raises ValueError when incomplete."""
        artist = (data.get("artist") or "").strip()
        track = (data.get("track") or "").strip()
        if not artist or not track:
            raise ValueError("artist and track required")
        duration = data.get("duration")
        kwargs = {
            "artist": artist,
            "track": track,
            "album": data.get("album") or None,
            "album_artist": data.get("album_artist") or None,
            "duration": int(duration) if duration else None,
            "mbid": data.get("mbid") or None,
        }
        if data.get("timestamp"):
            kwargs["timestamp"] = int(data["timestamp"])
        return cls(**kwargs)


@dataclass(frozen=True)
class ServiceCallResult:
    """Successful outcome of a scrobbler call."""
    OK = "ok"
    IGNORED = "ignored"   # scrobbler chose not to submit (e.g. too short)

    label: str
    status: str = OK


class ScrobblerError(Exception):
    """A failed scrobbler call."""
    ERROR_AUTH = "auth"
    ERROR_OTHER = "other"

    def __init__(self, message: str, label: str | None = None, kind: str = ERROR_OTHER):
        super().__init__(message)
        self.label = label
        self.kind = kind

    def is_auth_error(self) -> bool:
        return self.kind == self.ERROR_AUTH

    @classmethod
    def auth(cls, message: str, label: str | None = None) -> "ScrobblerError":
        return cls(message, label=label, kind=cls.ERROR_AUTH)


class Scrobbler(ABC):
    """Interface every scrobbler must implement."""

    # Stable, unique identifier, e.g. "Last.fm"
    label: str = ""

    def get_label(self) -> str:
        return self.label

    @abstractmethod
    async def get_session(self):
        """Return once the scrobbler holds a usable session.  Raise otherwise."""

    @abstractmethod
    async def get_auth_url(self) -> str:
        """Return a URL where the user can grant access."""

    @abstractmethod
    def get_status_url(self) -> str:
        """Informational page shown when sign-in fails."""

    @abstractmethod
    async def send_now_playing(self, song: Song) -> ServiceCallResult: ...

    @abstractmethod
    async def scrobble(self, song: Song) -> ServiceCallResult: ...

    @abstractmethod
    async def toggle_love(self, song: Song, flag: bool) -> ServiceCallResult: ...

    # -- Optional: override in scrobblers holding resources --

    async def close(self) -> None:
        pass  # no-op by default

    def __repr__(self):
        return f"<{type(self).__name__} {self.label}>"
