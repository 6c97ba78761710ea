"""
Storage Module
==============

SQLite persistence shared by the dictionary, field registry and review queue.
"""

from .database import NamingDB

__all__ = ["NamingDB"]
