"""
Security guards for role-based access control.

Role checks happen here, before any core operation runs. Ownership rules that
are business logic (assignee status updates, public tracking) live in the
services instead.
"""

from typing import List
from fastapi import Depends, HTTPException, status
from parceltrack.app.models.enums import UserRole
from parceltrack.app.core.dependencies import get_current_user


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/statistics/global")
        async def global_stats(current_user: dict = Depends(require_role([UserRole.MANAGER]))):
            ...

    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint

    Returns:
        FastAPI dependency function that validates user role

    Raises:
        HTTPException 403 if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        try:
            user_role = UserRole(current_user.get("role"))
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid role in token"
            )

        if user_role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        return current_user

    return role_checker


def require_linked_entity(current_user: dict, claim: str) -> str:
    """
    Return the directory id a token is linked to (e.g. ``delivery_person_id``).

    Raises:
        HTTPException 403 if the token carries no such link
    """
    entity_id = current_user.get(claim)
    if not entity_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Token is not linked to a {claim.replace('_id', '').replace('_', ' ')}"
        )
    return entity_id
