"""Adapters connecting the core to logging backends and web frameworks."""
