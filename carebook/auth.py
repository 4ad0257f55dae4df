# carebook/auth.py
import logging
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .application.lifecycle import Actor, Role
from .utils import decode_jwt_token

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer()

def get_current_actor(credentials: HTTPAuthorizationCredentials = Depends(oauth2_scheme)) -> Actor:
    """Resolve the caller from the bearer token.

    Identity and role come from the external auth service and are trusted
    as they are.
    """
    payload = decode_jwt_token(credentials.credentials)
    if not payload:
        logger.warning("JWT token decode failed - invalid or expired token")
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    actor_id = payload.get("sub")
    if not actor_id:
        raise HTTPException(status_code=401, detail="Invalid token: missing user ID")
    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token: unknown role")
    return Actor(actor_id=str(actor_id), role=role)
