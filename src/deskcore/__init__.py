"""
deskcore
========

Help-desk authorization and ticket routing service.
"""

__version__ = "1.0.0"
