"""
pgcdc - source position and checkpoint tracking for Postgres change data capture
"""

__version__ = "0.1.0"
