"""
Newsdesk - multi-source RSS/Atom aggregation engine.
"""

__version__ = "1.0.0"
