# src/aura_stage/services/__init__.py
"""Business logic services for the Aura application."""

from .counter import CounterService
from .groups import GroupService
from .identity import IdentityService
from .ledger import RatingLedger

__all__ = [
    "CounterService",
    "GroupService",
    "IdentityService",
    "RatingLedger",
]
