"""Core: config and process bootstrap.

Single place for settings and startup/shutdown wiring.
"""

from automation.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
