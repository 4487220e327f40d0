# src/aura_stage/db/__init__.py
"""Database configuration and utilities."""

from .session import SessionLocal, atomic, get_db

__all__ = ["get_db", "SessionLocal", "atomic"]
