"""Budget execution and accounting reconciliation engine."""

__version__ = "1.0.0"
