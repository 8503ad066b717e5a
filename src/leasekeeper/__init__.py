"""Lease-based leader election for replicated async services."""

__version__ = "0.1.0"
