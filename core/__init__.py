"""Core utilities: logging and self-diagnostics."""
