"""
API module for the speech relay.

This module contains the REST endpoints that accept audio or text and
return translated speech, plus health and metrics endpoints.
"""

from . import health, metrics, translate

__all__ = ["health", "metrics", "translate"]
