"""Estimate Claude Code rate-limit usage from local session logs."""

__version__ = "0.1.0"
