"""
Priority Guard - navigation blocking for must-read union notices

Aggregates outstanding priority items (must-read messages, announcements
and admin messages that require acknowledgment) for the signed-in member
and keeps them from navigating freely until each one is read and
acknowledged.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
