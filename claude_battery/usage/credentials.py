"""Read the rate-limit tier from Claude Code's credentials file.

Only the tier string is used; tokens in the file are never touched.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)


class CredentialsUnavailable(Exception):
    """The credentials file is missing, unreadable or has an unexpected shape."""


def load_tier(path: Path) -> str | None:
    """Return ``claudeAiOauth.rateLimitTier`` (or ``subscriptionType``) from *path*."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            creds = json.load(f)
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CredentialsUnavailable(f"Could not read {path}: {e}") from e

    oauth = creds.get("claudeAiOauth") if isinstance(creds, dict) else None
    if not isinstance(oauth, dict):
        raise CredentialsUnavailable(f"{path} has no claudeAiOauth section")

    for key in ("rateLimitTier", "subscriptionType"):
        value = oauth.get(key)
        if isinstance(value, str) and value:
            return value
    return None


class CredentialCache:
    """Caches the tier string for ``ttl_seconds``.

    Owned by whoever builds it (normally the UsageService); nothing here is
    shared between instances.
    """

    def __init__(
        self,
        path: Path,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.path = path
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._tier: str | None = None
        self._loaded_at: float | None = None

    def tier(self) -> str | None:
        """Cached tier, re-read once the TTL expires. None when unavailable."""
        now = self._clock()
        if self._loaded_at is not None and now - self._loaded_at < self.ttl_seconds:
            return self._tier
        try:
            tier = load_tier(self.path)
        except CredentialsUnavailable as e:
            # Failures are not cached so the next call retries
            logger.debug("%s; using default plan", e)
            return None
        self._tier = tier
        self._loaded_at = now
        return tier

    def invalidate(self) -> None:
        self._tier = None
        self._loaded_at = None
