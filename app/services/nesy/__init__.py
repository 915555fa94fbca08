"""Neurosymbolic decision-and-fusion core."""
