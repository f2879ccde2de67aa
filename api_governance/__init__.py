"""API governance ruleset store."""

__version__ = "0.1.0"
