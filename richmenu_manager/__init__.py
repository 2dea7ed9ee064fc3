"""LINE rich menu management tool."""

__version__ = "1.0.0"
