"""
Caller context forwarded by the API gateway.

The gateway authenticates the request and passes the user id and role as
headers; routes take them as explicit parameters instead of reading any
process-wide session.
"""
from typing import Optional
from fastapi import Header, HTTPException

ADMIN_ROLE = "admin"


def require_user(x_user_id: Optional[str] = Header(None)) -> str:
    """Require authenticated user"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id


def require_admin(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> str:
    """Require an authenticated admin"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    if x_user_role != ADMIN_ROLE:
        raise HTTPException(status_code=403, detail="Admin access required")
    return x_user_id


def is_admin(x_user_role: Optional[str] = Header(None)) -> bool:
    return x_user_role == ADMIN_ROLE
