"""HTTP API for the Aura application."""
