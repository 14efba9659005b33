"""Append-only troubleshooting log.

Advisory only: a write failure is logged and dropped.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


class DiagnosticLog:
    def __init__(self, path: Path | None = None) -> None:
        self.path = path

    @property
    def enabled(self) -> bool:
        return self.path is not None

    def write(self, message: str) -> None:
        logger.debug(message)
        if self.path is None:
            return
        stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(f"[{stamp}] {message}\n")
        except OSError as e:
            logger.debug("Could not write diagnostic log %s: %s", self.path, e)
