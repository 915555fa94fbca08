"""Operational scripts (python -m app.scripts.<name>)."""
