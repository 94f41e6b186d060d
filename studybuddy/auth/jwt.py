"""Session token issue and validation for studybuddy."""

import os
import jwt
from datetime import datetime, timedelta
from typing import Optional, Dict
from dotenv import load_dotenv

load_dotenv()

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRATION_HOURS = int(os.getenv("JWT_EXPIRATION_HOURS", "24"))


def create_access_token(user_id: str) -> str:
    """Issue a signed session token whose subject is the user id."""
    issued = datetime.utcnow()
    payload = {
        "sub": user_id,
        "exp": issued + timedelta(hours=JWT_EXPIRATION_HOURS),
        "iat": issued,
    }
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def get_user_id_from_token(token: str) -> Optional[str]:
    """Return the user id of a valid token, or None if expired or forged."""
    try:
        payload: Dict = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None
    return payload.get("sub")
