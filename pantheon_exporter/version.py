"""Version information and the user agent sent to the Pantheon API."""

from __future__ import annotations

import os
import platform

APP_NAME = "pantheon-metrics-exporter"

# Release builds set EXPORTER_VERSION (tag or short commit hash).
__version__ = "0.4.0"


def version_string() -> str:
    return os.getenv("EXPORTER_VERSION", "").strip() or __version__


def user_agent() -> str:
    """``pantheon-metrics-exporter/<version> (python_version=..; os=..; arch=..)``"""
    return "%s/%s (python_version=%s; os=%s; arch=%s)" % (
        APP_NAME,
        version_string(),
        platform.python_version(),
        platform.system().lower(),
        platform.machine().lower(),
    )
