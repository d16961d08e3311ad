"""Echo Tree trust and safety engine."""

__version__ = "0.1.0"
