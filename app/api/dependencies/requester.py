# app/api/dependencies/requester.py
from typing import Optional

from fastapi import Header, HTTPException, status

from app.schemas.meeting import UserRole
from app.services.ownership import Requester


async def get_requester(
    user_id: Optional[str] = Header(
        default=None,
        alias="X-User-Id",
        description="Id of the authenticated user, set by the auth gateway.",
    ),
    user_role: Optional[str] = Header(
        default=None,
        alias="X-User-Role",
        description="Role of the authenticated user: USER, MANAGER or ADMIN.",
    ),
) -> Requester:
    """
    Dependency resolving the requester identity for /stats endpoints.

    Rules
    -----
    - Token verification happens upstream; this service trusts the
      identity headers forwarded by the gateway.
    - Missing id or role -> 401.
    - Unknown role value -> 401 (never silently downgraded or upgraded).
    """
    if not user_id or not user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authenticated user identity.",
        )

    try:
        role = UserRole(user_role.upper())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown user role '{user_role}'.",
        )

    return Requester(id=user_id, role=role)
