from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Claude Code data directory (contains projects/ and .credentials.json)
    claude_dir: Path = Path.home() / ".claude"

    # Accounting window
    window_hours: int = 5
    lookback_hours: int = 24  # how far back window inference looks for activity

    # Plan limits are estimates; Anthropic doesn't publish exact numbers.
    # Keys are matched as substrings of the rate-limit tier string.
    default_token_limit: int = 88_000
    plan_limits: dict[str, int] = {
        "20x": 150_000,
        "5x": 60_000,
        "pro": 30_000,
    }
    plan_names: dict[str, str] = {
        "20x": "Max20",
        "5x": "Max5",
        "pro": "Pro",
    }
    plan_limits_file: str = ""  # optional YAML file overriding plan_limits
    credentials_ttl_seconds: int = 300

    # Reset anchor (optional fixed window boundaries)
    reset_anchor_file: Path = Path.home() / ".claude-battery" / "settings.json"
    reference_timezone: str = "UTC"

    # Scanning
    scan_workers: int = 1  # >1 reads log files on a thread pool

    # Diagnostics side log ("" disables)
    diagnostic_log_path: str = ""

    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8765

    # Logging
    log_level: str = "INFO"

    @property
    def projects_dir(self) -> Path:
        return self.claude_dir / "projects"

    @property
    def credentials_path(self) -> Path:
        return self.claude_dir / ".credentials.json"


settings = Settings()
