"""Auth middleware -- FastAPI dependencies that turn the caller's credential
into a remote API session.

The console does not keep accounts of its own. Every request carries the
operator's personal access token as ``Authorization: Bearer <token>``; it
is passed straight through to the remote API and dropped when the
request ends.
"""

from __future__ import annotations

from typing import AsyncIterator, Optional

import httpx
from fastapi import Depends, Header, HTTPException, status

from envdeck.session import Session


def get_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport for outgoing calls; ``None`` means the default network stack."""
    return None


def bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an ``Authorization`` header, or ``""``."""
    if not authorization:
        return ""
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


async def get_session(
    authorization: Optional[str] = Header(None),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
) -> AsyncIterator[Session]:
    """FastAPI dependency yielding a session bound to the caller's token.

    Raises ``401 Unauthorized`` when no bearer credential is supplied.
    """
    token = bearer_token(authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    session = Session(token, transport=transport)
    try:
        yield session
    finally:
        await session.sign_out()
