"""
API v1 router exports.
Provides API endpoint routers.
"""
from dreamsocial.api.v1 import social

__all__ = [
    "social",
]
