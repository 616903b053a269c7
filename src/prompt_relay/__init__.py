"""Durable prompt task queue with a bounded worker pool."""

__version__ = "0.1.0"
