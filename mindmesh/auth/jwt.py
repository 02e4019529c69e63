"""Bearer JWT validation for MindMesh.

Tokens are issued by the hosted identity provider; MindMesh only verifies
them with the shared secret and reads the subject and email claims.
"""

import os
import jwt
from datetime import datetime, timedelta
from typing import Optional, Dict
from dotenv import load_dotenv

load_dotenv()

# JWT configuration
AUTH_JWT_SECRET = os.getenv("AUTH_JWT_SECRET", "change-me-in-production")
AUTH_JWT_ALGORITHM = os.getenv("AUTH_JWT_ALGORITHM", "HS256")
AUTH_JWT_AUDIENCE = os.getenv("AUTH_JWT_AUDIENCE", "authenticated")


def create_access_token(user_id: str, email: Optional[str] = None, expires_in_hours: int = 1) -> str:
    """Create a token shaped like the identity provider's (local development and tests).

    Args:
        user_id: Subject to encode
        email: Optional email claim
        expires_in_hours: Lifetime of the token

    Returns:
        Encoded JWT token string
    """
    now = datetime.utcnow()
    payload = {
        "sub": user_id,
        "aud": AUTH_JWT_AUDIENCE,
        "exp": now + timedelta(hours=expires_in_hours),
        "iat": now,
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, AUTH_JWT_SECRET, algorithm=AUTH_JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict]:
    """Decode and validate a bearer token.

    Returns:
        Decoded payload, or None if the signature, audience or expiry is invalid
    """
    try:
        return jwt.decode(
            token,
            AUTH_JWT_SECRET,
            algorithms=[AUTH_JWT_ALGORITHM],
            audience=AUTH_JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
