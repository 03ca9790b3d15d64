# Rapport API Utilities
"""
Shared utility functions for Rapport API services.
"""

from api.utils.datetime_utils import make_aware, utc_now_iso

__all__ = ["make_aware", "utc_now_iso"]
