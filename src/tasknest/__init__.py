"""TaskNest — local task manager with Google Tasks import."""

__version__ = "0.1.0"
