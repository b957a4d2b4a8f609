# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Atomic session storage for scrobblers.

One JSON file holds the session of every scrobbler, keyed by label:

    {"Last.fm": {"session_key": "...", "name": "user", "updated_at": "..."}}

Writes are atomic (temp file + rename) so a crash mid-write never corrupts
the file.

Storage locations (first writable wins):
  1. $BS5C_CONFIG_DIR/scrobbler_sessions.json  (production, /etc/beosound5c)
  2. <script_dir>/scrobbler_sessions.json      (dev fallback)
"""

import json
import os
import tempfile
from datetime import datetime, timezone

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
STORE_NAME = "scrobbler_sessions.json"


def _store_paths():
    return [
        os.path.join(os.getenv("BS5C_CONFIG_DIR", "/etc/beosound5c"), STORE_NAME),
        os.path.join(SCRIPT_DIR, STORE_NAME),
    ]


def _find_store_path():
    """Find the best store path (first existing, or first writable)."""
    paths = _store_paths()
    for path in paths:
        if os.path.exists(path):
            return path
    for path in paths:
        d = os.path.dirname(path)
        if os.path.isdir(d) and os.access(d, os.W_OK):
            return path
    return paths[-1]


def _load_all():
    try:
        with open(_find_store_path()) as f:
            data = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def _write_all(data):
    path = _find_store_path()
    d = os.path.dirname(path)
    os.makedirs(d, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=d, suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp, path)
    except Exception:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
    return path


def load_session(label):
    """Return the stored session dict for *label*, or None."""
    entry = _load_all().get(label)
    if entry and entry.get("session_key"):
        return entry
    return None


def save_session(label, session_key, name=None):
    """Atomically store the session of *label*.  Returns the store path."""
    data = _load_all()
    data[label] = {
        "session_key": session_key,
        "name": name,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }
    return _write_all(data)


def delete_session(label):
    """Forget the session of *label*.  Returns True if one was stored."""
    data = _load_all()
    if data.pop(label, None) is None:
        return False
    _write_all(data)
    return True
