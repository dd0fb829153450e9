"""Cooperative request contexts, a timeout middleware and operational HTTP handlers."""

__version__ = "0.1.0"