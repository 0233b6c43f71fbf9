"""Leadflow - lead lifecycle and monthly commission service."""

__version__ = "1.0.0"
