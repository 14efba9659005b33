"""Persisted reset-anchor hour (single-key JSON settings file)."""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

ANCHOR_KEY = "reset_hour"


def validate_hour(hour: object) -> int:
    if isinstance(hour, bool) or not isinstance(hour, int) or not 0 <= hour <= 23:
        raise ValueError(f"reset hour must be an integer in 0..23, got {hour!r}")
    return hour


class AnchorStore:
    """Reads and writes the optional reset anchor."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> int | None:
        """Configured hour, or None (window inference) if unset or invalid."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Ignoring unreadable anchor file %s: %s", self.path, e)
            return None

        if not isinstance(data, dict) or ANCHOR_KEY not in data:
            return None
        try:
            return validate_hour(data[ANCHOR_KEY])
        except ValueError as e:
            logger.warning("Ignoring anchor in %s: %s", self.path, e)
            return None

    def save(self, hour: int) -> None:
        hour = validate_hour(hour)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({ANCHOR_KEY: hour}, f)
        logger.info("Reset anchor set to %02d:00", hour)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        logger.info("Reset anchor cleared")
