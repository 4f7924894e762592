"""
Authentication utilities: JWT verification for tokens issued by the auth backend
"""

import jwt
from datetime import datetime, timedelta
from typing import Optional
from config.settings import settings

# JWT configuration
ALGORITHM = "HS256"


def create_jwt(user_id: str, email: Optional[str] = None, expires_in: timedelta = timedelta(hours=1)) -> str:
    """
    Create a token shaped like the auth backend's access tokens.
    Used by tests and local tooling; production tokens come from the backend.
    """
    if not settings.jwt_secret_key:
        raise ValueError("JWT_SECRET_KEY is not set. Cannot create JWT token.")

    payload = {
        "sub": user_id,
        "exp": datetime.utcnow() + expires_in,
    }
    if email:
        payload["email"] = email
    if settings.jwt_audience:
        payload["aud"] = settings.jwt_audience
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=ALGORITHM)


def decode_jwt(token: str):
    """Decode a JWT token. Returns None if invalid."""
    if not settings.jwt_secret_key:
        raise ValueError("JWT_SECRET_KEY is not set. Cannot decode JWT token.")

    options = {} if settings.jwt_audience else {"verify_aud": False}
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[ALGORITHM],
            audience=settings.jwt_audience,
            options=options,
        )
        return payload
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
