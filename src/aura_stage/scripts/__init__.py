"""Operational scripts for the Aura service."""
