"""Training console: step-by-step instructions beside live terminal sessions."""

__version__ = "0.1.0"
