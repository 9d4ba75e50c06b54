"""Classified-ads search watcher."""

__version__ = "0.1.0"
