"""
WordRoot API
============
FastAPI application over the naming service.
"""

from .main import create_app

__all__ = ["create_app"]
