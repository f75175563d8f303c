"""Core domain: models, ports and loggers."""
