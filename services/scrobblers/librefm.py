# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""Libre.fm scrobbler — speaks the Last.fm API on its own host."""

from .audioscrobbler import AudioScrobbler


class LibreFmScrobbler(AudioScrobbler):
    id = "librefm"
    label = "Libre.fm"
    api_url = "https://libre.fm/2.0/"
    auth_url = "https://libre.fm/api/auth/"
    status_url = "https://libre.fm/"
