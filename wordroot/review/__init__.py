"""
Review Module
=============

Notification task queue for word-root requests and field approvals.
"""

from .queue import ReviewQueue

__all__ = ["ReviewQueue"]
