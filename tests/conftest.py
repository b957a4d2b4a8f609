"""Shared fakes and fixtures for the scrobbler tests.

FakeScrobbler implements the Scrobbler interface in memory; each operation can
be told to raise.  FakeNotifications records the prompts the service shows.
"""

import asyncio

import pytest

from lib import config
from scrobblers.base import Scrobbler, ScrobblerError, ServiceCallResult, Song


class FakeScrobbler(Scrobbler):

    def __init__(self, label, session_error=None, auth_url="https://auth.example/grant",
                 auth_url_error=None, errors=None, status_url=None):
        self.label = label
        self.session_error = session_error
        self.auth_url = auth_url
        self.auth_url_error = auth_url_error
        self.errors = errors or {}
        self.status_url = status_url or f"https://status.example/{label}"
        self.calls = []
        self.gate: asyncio.Event | None = None

    async def get_session(self):
        self.calls.append(("get_session",))
        if self.session_error:
            raise self.session_error
        return "session"

    async def get_auth_url(self):
        self.calls.append(("get_auth_url",))
        if self.auth_url_error:
            raise self.auth_url_error
        return self.auth_url

    def get_status_url(self):
        return self.status_url

    async def _submit(self, name, *args):
        self.calls.append((name, *args))
        if self.gate is not None:
            await self.gate.wait()
        if name in self.errors:
            raise self.errors[name]
        return ServiceCallResult(self.label)

    async def send_now_playing(self, song):
        return await self._submit("send_now_playing", song)

    async def scrobble(self, song):
        return await self._submit("scrobble", song)

    async def toggle_love(self, song, flag):
        return await self._submit("toggle_love", song, flag)


class FakeNotifications:

    def __init__(self):
        self.authenticate = []
        self.sign_in_errors = []

    def show_authenticate(self, label, auth_url):
        self.authenticate.append((label, auth_url))

    def show_sign_in_error(self, label, status_url):
        self.sign_in_errors.append((label, status_url))

    async def drain(self):
        pass


def auth_error(label):
    return ScrobblerError.auth("Invalid session key", label)


def other_error(label):
    return ScrobblerError("Service unavailable", label)


@pytest.fixture
def song():
    return Song(artist="Kraftwerk", track="Computer Love", album="Computer World",
                duration=436, timestamp=1700000000)


@pytest.fixture
def notifications():
    return FakeNotifications()


@pytest.fixture(autouse=True)
def empty_config():
    """Never read /etc/beosound5c/config.json from tests."""
    config.set_config({})
    yield
    config.set_config(None)


@pytest.fixture
def session_dir(tmp_path, monkeypatch):
    """Point the scrobbler session store at a temp directory."""
    monkeypatch.setenv("BS5C_CONFIG_DIR", str(tmp_path))
    return tmp_path
