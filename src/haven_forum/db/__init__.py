# src/haven_forum/db/__init__.py
"""Database configuration and utilities."""

from .session import SessionLocal, get_db, unit_of_work

__all__ = ["get_db", "SessionLocal", "unit_of_work"]
