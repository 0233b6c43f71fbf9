"""Utility functions."""

from leadflow.utils.activity import get_client_ip, log_activity

__all__ = [
    "log_activity",
    "get_client_ip",
]
