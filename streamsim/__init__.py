"""Exchange stream state simulator."""

__version__ = "1.0.0"
