"""Bearer token authentication."""

from .dependencies import CurrentUser, get_current_user
from .jwt import create_access_token, decode_token

__all__ = ["CurrentUser", "create_access_token", "decode_token", "get_current_user"]
