"""Daily multi-source news headlines digest."""

__version__ = "0.1.0"
