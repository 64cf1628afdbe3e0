"""tildegate runtime -- HTTP gateway in front of a single IRC bot session."""

__version__ = "0.1.0"
