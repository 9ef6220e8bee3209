# Stock Vision - API Package
"""
FastAPI route handlers for the web API.

Routers:
- results: Analysis results document and report endpoints
- stocks: Tracked stock list endpoints
- settings: Provider credential and batch option endpoints
- tasks: Background analysis task endpoints
"""

from . import results
from . import stocks
from . import settings
from . import tasks

__all__ = [
    "results",
    "stocks",
    "settings",
    "tasks"
]
