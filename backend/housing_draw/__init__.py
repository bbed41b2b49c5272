"""Housing draw — group membership consistency engine."""

__version__ = "1.0.0"
