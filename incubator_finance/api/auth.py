"""
Actor Resolution Module

Resolves the requesting user's identity from headers set by the upstream
authentication gateway. Permission checks are the gateway's job.
"""

import os

from fastapi import Header, HTTPException, status

from ..grants.models import Actor

DEV_ACTOR = Actor(id="dev", name="Developer", email=None)


async def get_current_actor(
    x_user_id: str | None = Header(None, alias="X-User-ID"),
    x_user_name: str | None = Header(None, alias="X-User-Name"),
    x_user_email: str | None = Header(None, alias="X-User-Email"),
) -> Actor:
    """Get the acting user from request headers.

    Args:
        x_user_id: User ID from header
        x_user_name: Display name from header
        x_user_email: Email from header

    Returns:
        Actor

    Raises:
        HTTPException: If the user ID header is missing outside development
    """
    user_id = x_user_id.strip() if x_user_id else ""

    if not user_id:
        # Development mode: fall back to a fixed actor
        if os.getenv("ENVIRONMENT", "development") == "development":
            return DEV_ACTOR

        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-ID header",
        )

    return Actor(
        id=user_id,
        name=x_user_name.strip() if x_user_name and x_user_name.strip() else None,
        email=x_user_email.strip() if x_user_email and x_user_email.strip() else None,
    )
