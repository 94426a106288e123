"""
Bearer token verification.
Tokens are issued by the identity provider; the portal only decodes them and
reads the identity claims (username, email, oid).
"""
import logging

import jwt
from fastapi import HTTPException, status
from starlette.requests import HTTPConnection

from portal.core.config import settings
from portal.schemas.users import Identity

logger = logging.getLogger("auth")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token(conn: HTTPConnection) -> str | None:
    """Bearer token from the Authorization header, falling back to the portal cookie."""
    header = conn.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return conn.cookies.get(settings.token_cookie_name)


def decode_identity(token: str) -> Identity:
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as e:
        logger.warning("token_rejected", extra={"error": type(e).__name__})
        raise _unauthorized("Could not validate credentials") from e
    username = claims.get("username") or claims.get("preferred_username")
    if not username:
        raise _unauthorized("Token carries no username")
    return Identity(username=username, email=claims.get("email"), oid=claims.get("oid"))


def get_current_identity(conn: HTTPConnection) -> Identity:
    token = get_token(conn)
    if not token:
        raise _unauthorized("Not authenticated")
    return decode_identity(token)
