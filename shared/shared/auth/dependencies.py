"""Bearer-token authentication shared by every service.

Tokens are issued by the identity provider; services only verify them and
turn the claims into an immutable ``CurrentUser``.
"""
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from shared.auth.config import AuthSettings
from shared.constants import Role
from shared.models.user import CurrentUser

http_bearer = HTTPBearer(auto_error=False)


def get_auth_settings() -> AuthSettings:
    return AuthSettings()


def decode_principal(token: str, settings: AuthSettings) -> CurrentUser:
    """Verify signature, issuer, audience and expiry, then map the claims.

    Raises ``JWTError`` for bad tokens and ``ValueError`` for claims that do
    not describe a user (missing or non-UUID ``sub``, unknown role).
    """
    claims = jwt.decode(
        token,
        settings.secret,
        algorithms=[settings.algorithm],
        issuer=settings.issuer,
        audience=settings.audience,
    )
    subject = claims.get("sub")
    if not subject:
        raise ValueError("Token has no subject")
    return CurrentUser(
        id=UUID(subject),
        email=claims.get("email") or "",
        roles=[Role(r) for r in claims.get("roles") or []],
    )


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    settings: AuthSettings = Depends(get_auth_settings),
) -> CurrentUser | None:
    if credentials is None or not credentials.credentials:
        return None
    try:
        return decode_principal(credentials.credentials, settings)
    except (JWTError, ValueError):
        return None


async def get_current_user_required(
    user: CurrentUser | None = Depends(get_current_user_optional),
) -> CurrentUser:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
