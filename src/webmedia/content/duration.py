from __future__ import annotations

import logging
import re
from typing import Optional

LOGGER = logging.getLogger(__name__)
DURATION_RE = re.compile(r"<!-- DURATION=(.*?) -->")


def extract_duration(markup: str) -> Optional[int]:
    """Return the duration in seconds from the first DURATION comment, if any."""
    match = DURATION_RE.search(markup)
    if not match:
        return None
    try:
        return int(match.group(1))
    except ValueError:
        LOGGER.warning("Unable to read duration override from %r", match.group(0))
        return None
