"""
OSAD: data layer for the school administration dashboard.

Normalizes backend response envelopes, joins and aggregates records, and
wraps the REST backend with read/write-aware fallbacks.
"""

from __future__ import annotations

from OSAD.settings import Settings, get_settings  # noqa: F401
from OSAD.exceptions import OSADError  # noqa: F401

__version__ = "0.1.0"
