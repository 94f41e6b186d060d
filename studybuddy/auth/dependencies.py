"""FastAPI dependencies for authentication."""

from fastapi import Depends, HTTPException, status, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from studybuddy.database.database import get_db
from studybuddy.database.models import UserDB
from studybuddy.auth.jwt import get_user_id_from_token
from studybuddy.errors import CredentialMissingError
from studybuddy.models.user import User

security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the signed-in user from the session token.

    Raises:
        HTTPException: 401 if the token is missing, invalid, or names an unknown user
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = get_user_id_from_token(credentials.credentials)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_db = db.query(UserDB).filter(UserDB.id == user_id).first()
    if not user_db:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_db.to_pydantic()


def get_calendar_token(
    x_google_access_token: str = Header(default="", alias="X-Google-Access-Token"),
) -> str:
    """Google OAuth access token the browser holds for calendar writes.

    Raises:
        CredentialMissingError: Header absent or blank
    """
    token = (x_google_access_token or "").strip()
    if not token:
        raise CredentialMissingError()
    return token
