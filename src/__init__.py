"""AI overview optimizer: article generation and JSON-LD structured data."""

__version__ = "0.3.0"
