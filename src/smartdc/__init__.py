"""Client library and CLI for the SmartDataCenter CloudAPI."""

__version__ = "0.1.0"
