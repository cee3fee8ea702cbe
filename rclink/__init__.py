"""Remote-control link for an HC-05 driven car."""

__version__ = "0.1.0"
