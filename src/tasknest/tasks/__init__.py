"""Local task storage and Google Tasks import."""
