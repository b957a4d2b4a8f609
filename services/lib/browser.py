# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""Open URLs in a new tab of the host's browser (kiosk or dev desktop)."""

import logging
import webbrowser

logger = logging.getLogger(__name__)


def open_tab(url: str) -> bool:
    """Open *url* in a new browser tab.  Returns False if no browser took it."""
    opened = webbrowser.open_new_tab(url)
    if opened:
        logger.info("Opened tab: %s", url)
    else:
        logger.warning("No browser available to open %s", url)
    return opened
