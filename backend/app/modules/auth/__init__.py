# Authentication module

from app.modules.auth.dependencies import (
    get_current_user,
    get_verified_user,
    get_current_admin,
)

__all__ = [
    "get_current_user",
    "get_verified_user",
    "get_current_admin",
]
