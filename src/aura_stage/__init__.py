"""Aura Stage: group reputation ledger and leaderboards."""

__version__ = "0.1.0"
