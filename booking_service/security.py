from jose import jwt, JWTError
from fastapi import Request, HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from . import config
from .actors import Actor

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_actor(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Actor:
    if not config.JWT_SECRET:
        raise RuntimeError("JWT_SECRET environment variable is not set")

    token = None
    if creds and creds.scheme.lower() == "bearer":
        token = creds.credentials

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Bearer token",
        )

    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    sub = payload.get("sub")
    if not sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
        )

    roles = payload.get("roles") or []
    request.state.user_sub = sub
    request.state.user_roles = roles
    return Actor(id=str(sub), roles=tuple(roles))


def require_role(actor: Actor, allowed_roles: list[str]):
    if not actor.roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Roles missing in token",
        )

    if not actor.has_role(*allowed_roles):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access forbidden for this role",
        )
