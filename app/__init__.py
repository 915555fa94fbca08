"""NeSy Core: neurosymbolic decision-and-fusion service."""

__version__ = "0.1.0"
