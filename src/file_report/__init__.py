"""Task output file reports correlated with their published locations."""

__version__ = "0.1.0"
