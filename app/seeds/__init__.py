"""Bundled seed catalogue."""
