"""Permission-resolution cache with a self-tuning optimization engine."""

__version__ = "1.0.0"
