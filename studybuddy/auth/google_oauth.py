"""Google sign-in: ID token verification."""

import os
from typing import Optional, Dict
from google.oauth2 import id_token
from google.auth.transport import requests
from dotenv import load_dotenv

load_dotenv()

GOOGLE_OAUTH_CLIENT_ID = os.getenv("GOOGLE_OAUTH_CLIENT_ID")

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


def verify_google_token(id_token_str: str) -> Optional[Dict]:
    """Verify a Google ID token and extract user information.

    Args:
        id_token_str: ID token issued to the browser by Google Identity Services

    Returns:
        Dictionary with user info (id, email, name), or None if invalid
    """
    try:
        idinfo = id_token.verify_oauth2_token(
            id_token_str,
            requests.Request(),
            GOOGLE_OAUTH_CLIENT_ID,
        )
    except ValueError:
        return None

    if idinfo.get("iss") not in GOOGLE_ISSUERS:
        return None

    return {
        "id": idinfo["sub"],
        "email": idinfo.get("email"),
        "name": idinfo.get("name"),
    }
