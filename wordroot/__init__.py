"""
WordRoot
========
Standardized database field naming: Chinese descriptions are decomposed into
a controlled vocabulary of word roots and composed into English field names.
"""

__version__ = "1.0.0"
