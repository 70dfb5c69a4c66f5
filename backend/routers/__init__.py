"""
FastAPI routers for the Segmentation Backend API.
"""

from . import health
from . import rules
from . import segments
from . import smart_lists
from . import workflows

__all__ = [
    "health",
    "rules",
    "segments",
    "smart_lists",
    "workflows",
]
