# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""Last.fm scrobbler (Audioscrobbler 2.0)."""

from .audioscrobbler import AudioScrobbler


class LastFmScrobbler(AudioScrobbler):
    id = "lastfm"
    label = "Last.fm"
    api_url = "https://ws.audioscrobbler.com/2.0/"
    auth_url = "https://www.last.fm/api/auth/"
    status_url = "https://www.last.fm/about/trackmymusic"
