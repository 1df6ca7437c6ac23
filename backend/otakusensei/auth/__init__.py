"""Authentication / authorization helpers.

Users authenticate with a JWT access token, sent either as
`Authorization: Bearer <token>` or in the httpOnly `token` cookie set by the
login endpoints. Roles are `user` and `admin`.
"""

from .deps import get_current_user, get_optional_user, require_admin
from .security import create_access_token, hash_password, verify_password

__all__ = [
    "get_current_user",
    "get_optional_user",
    "require_admin",
    "create_access_token",
    "hash_password",
    "verify_password",
]
