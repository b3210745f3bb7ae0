"""
API Routers for Robot Vision
"""

from . import vision

__all__ = ["vision"]
