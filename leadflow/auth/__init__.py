"""Authentication module."""

from leadflow.auth.dependencies import get_current_user, require_team_lead
from leadflow.auth.jwt import create_access_token, verify_token

__all__ = [
    "create_access_token",
    "verify_token",
    "get_current_user",
    "require_team_lead",
]
