"""Approval request workflow service for hotel operations."""

__version__ = "1.0.0"
