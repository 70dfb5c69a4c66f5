"""
Utility modules for the Segmentation Backend API.
"""

from .audience import (
    call_store,
    invalid_user_response,
    load_audience_inputs,
    owned_or_404,
    segment_rules_payload,
)

__all__ = [
    "call_store",
    "invalid_user_response",
    "load_audience_inputs",
    "owned_or_404",
    "segment_rules_payload",
]
