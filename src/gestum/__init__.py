"""Gestum metrics: time-windowed cash flow, inventory and support aggregation."""

__version__ = "0.1.0"
