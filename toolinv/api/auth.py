"""
Password hashing and bearer tokens.

Passwords are hashed with bcrypt; access tokens are HS256 JWTs signed with the
configured secret. ``require_token`` guards the write endpoints. Without a
configured secret no token is issued or accepted.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from toolinv.core.config import InventoryConfig, get_config
from toolinv.utils.logger import get_logger

logger = get_logger("api.auth")

bearer_scheme = HTTPBearer(auto_error=False)


class AuthNotConfiguredError(RuntimeError):
    """No JWT signing secret is configured."""


def _signing_secret(config: InventoryConfig) -> str:
    if not config.jwt_secret:
        raise AuthNotConfiguredError("JWT_SECRET is not set")
    return config.jwt_secret


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(username: str, config: Optional[InventoryConfig] = None) -> str:
    config = config or get_config()
    secret = _signing_secret(config)
    now = datetime.now(timezone.utc)
    claims = {
        "sub": username,
        "iat": now,
        "exp": now + timedelta(minutes=config.jwt_expires_minutes),
    }
    return jwt.encode(claims, secret, algorithm=config.jwt_algorithm)


def decode_access_token(token: str, config: Optional[InventoryConfig] = None) -> Dict[str, Any]:
    """Verify signature and expiry.

    Raises:
        AuthNotConfiguredError: no signing secret
        jwt.PyJWTError: bad or expired token
    """
    config = config or get_config()
    return jwt.decode(token, _signing_secret(config), algorithms=[config.jwt_algorithm])


def require_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Dict[str, Any]:
    """FastAPI dependency: the verified token claims, or 401 (503 without a secret)."""
    _signing_secret(get_config())
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    try:
        return decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.PyJWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
