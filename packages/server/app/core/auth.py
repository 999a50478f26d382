"""
Caller identity for Task Graph.

Authentication happens upstream (gateway or auth middleware). By the time a
request reaches this service the authenticated user id is carried in the
X-User-Id header; this module only parses it.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import APIKeyHeader

CALLER_HEADER = "X-User-Id"

caller_header = APIKeyHeader(name=CALLER_HEADER, auto_error=False)


class AuthenticatedUser:
    """Identity of the already-authorized caller."""

    def __init__(self, user_id: uuid.UUID):
        self.user_id = user_id


async def require_caller(
    user_id: Optional[str] = Depends(caller_header),
) -> AuthenticatedUser:
    if not user_id:
        raise HTTPException(status_code=401, detail=f"Missing {CALLER_HEADER} header")
    try:
        return AuthenticatedUser(uuid.UUID(user_id))
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Invalid {CALLER_HEADER} header")
