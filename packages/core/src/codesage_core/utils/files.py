from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def read_text(path: str | Path) -> str | None:
    """Return the file's text, or None if it does not exist or cannot be decoded."""
    p = Path(path)
    if not p.is_file():
        return None
    try:
        return p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Could not read %s: %s", p, e)
        return None
