"""Taiga command-line client with a local sync and consistency layer."""

__version__ = "0.3.0"
