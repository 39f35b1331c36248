"""Core infrastructure: logging, configuration and time."""
