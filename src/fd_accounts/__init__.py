"""Fixed-deposit account backend."""

__version__ = "0.1.0"
