"""Tests for config-driven scrobbler creation and Song parsing."""

import logging

import pytest

from lib import config
from scrobblers import (
    LastFmScrobbler,
    LibreFmScrobbler,
    ListenBrainzScrobbler,
    Song,
    create_scrobblers,
)


@pytest.fixture
def secrets(monkeypatch):
    monkeypatch.setenv("LASTFM_API_KEY", "lf-key")
    monkeypatch.setenv("LASTFM_API_SECRET", "lf-secret")
    monkeypatch.setenv("LIBREFM_API_KEY", "libre-key")
    monkeypatch.setenv("LIBREFM_API_SECRET", "libre-secret")
    monkeypatch.setenv("LISTENBRAINZ_TOKEN", "lb-token")


def test_default_is_lastfm(secrets):
    scrobblers = create_scrobblers(None)

    assert [type(s) for s in scrobblers] == [LastFmScrobbler]
    assert scrobblers[0].api_key == "lf-key"


def test_enabled_list(secrets):
    config.set_config({"scrobblers": {
        "enabled": ["lastfm", "librefm", "listenbrainz"],
        "listenbrainz_url": "http://lb.local/",
    }})

    scrobblers = create_scrobblers(None)

    assert [s.get_label() for s in scrobblers] == ["Last.fm", "Libre.fm", "ListenBrainz"]
    assert isinstance(scrobblers[1], LibreFmScrobbler)
    assert isinstance(scrobblers[2], ListenBrainzScrobbler)
    assert scrobblers[2].api_url == "http://lb.local"
    assert scrobblers[2].token == "lb-token"


def test_missing_secrets_skip_audioscrobblers(monkeypatch, caplog):
    monkeypatch.delenv("LASTFM_API_KEY", raising=False)
    monkeypatch.delenv("LASTFM_API_SECRET", raising=False)
    monkeypatch.delenv("LISTENBRAINZ_TOKEN", raising=False)
    config.set_config({"scrobblers": {"enabled": ["lastfm", "listenbrainz", "myspace"]}})

    with caplog.at_level(logging.WARNING):
        scrobblers = create_scrobblers(None)

    # ListenBrainz stays registered so the user can authenticate it later
    assert [s.get_label() for s in scrobblers] == ["ListenBrainz"]
    assert "LASTFM_API_KEY" in caplog.text
    assert "Unknown scrobbler 'myspace'" in caplog.text


def test_song_from_dict():
    song = Song.from_dict({
        "artist": " Kraftwerk ",
        "track": "Numbers",
        "album": "",
        "duration": "199",
        "timestamp": 1700000000,
    })

    assert song.artist == "Kraftwerk"
    assert song.album is None
    assert song.duration == 199
    assert song.timestamp == 1700000000


def test_song_requires_artist_and_track():
    with pytest.raises(ValueError):
        Song.from_dict({"artist": "Kraftwerk"})


def test_config_validation_warns_on_unknown_scrobbler(tmp_path, monkeypatch, caplog):
    path = tmp_path / "config.json"
    path.write_text('{"device": "Kitchen", "scrobblers": {"enabled": ["lastfm", "napster"]}}')
    monkeypatch.setattr(config, "_SEARCH_PATHS", [str(path)])

    with caplog.at_level(logging.WARNING):
        loaded = config.reload_config()

    assert config.cfg("scrobblers", "enabled") == ["lastfm", "napster"]
    assert loaded["device"] == "Kitchen"
    assert "unknown scrobbler 'napster'" in caplog.text


def test_config_without_scrobblers_section_enables_default(tmp_path, monkeypatch, caplog, secrets):
    path = tmp_path / "config.json"
    path.write_text('{"device": "Kitchen"}')
    monkeypatch.setattr(config, "_SEARCH_PATHS", [str(path)])

    with caplog.at_level(logging.WARNING):
        config.reload_config()
    scrobblers = create_scrobblers(None)

    assert "enabling lastfm" in caplog.text
    assert [s.get_label() for s in scrobblers] == ["Last.fm"]


def test_config_validation_ignores_case(tmp_path, monkeypatch, caplog, secrets):
    path = tmp_path / "config.json"
    path.write_text('{"device": "Kitchen", "scrobblers": {"enabled": ["LastFM", "ListenBrainz"]}}')
    monkeypatch.setattr(config, "_SEARCH_PATHS", [str(path)])

    with caplog.at_level(logging.WARNING):
        config.reload_config()
    scrobblers = create_scrobblers(None)

    assert "unknown scrobbler" not in caplog.text
    assert [s.get_label() for s in scrobblers] == ["Last.fm", "ListenBrainz"]
