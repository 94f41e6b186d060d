"""Repository for User database operations."""

import logging
from datetime import datetime
from sqlalchemy.orm import Session

from studybuddy.models.user import User
from studybuddy.models.reminder import ReminderMinutes, decode_reminder, encode_reminder
from studybuddy.database.models import UserDB

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, db: Session):
        self.db = db

    def create_or_update(self, user: User) -> User:
        """Create or update user (upsert).

        The stored reminder preference is left untouched on update.
        """
        user_db = self.db.query(UserDB).filter(UserDB.id == user.id).first()

        try:
            if user_db:
                user_db.email = user.email
                user_db.name = user.name
                user_db.updated_at = user.updated_at
            else:
                user_db = UserDB.from_pydantic(user)
                self.db.add(user_db)
            self.db.commit()
            self.db.refresh(user_db)
            logger.debug(f"Saved user {user.id}: {user.email}")
            return user_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to save user {user.id}: {type(e).__name__}: {str(e)}")
            raise

    def get_reminder_minutes(self, user_id: str) -> ReminderMinutes:
        """Decoded reminder preference (default when unset or invalid)."""
        user_db = self.db.query(UserDB).filter(UserDB.id == user_id).first()
        return decode_reminder(user_db.reminder_pref if user_db else None)

    def set_reminder_minutes(self, user_id: str, value: ReminderMinutes) -> ReminderMinutes:
        """Persist a reminder preference.

        Raises:
            ValueError: If the user does not exist or minutes are negative
        """
        if value is not None and value < 0:
            raise ValueError("Reminder minutes must be zero or positive")
        user_db = self.db.query(UserDB).filter(UserDB.id == user_id).first()
        if not user_db:
            raise ValueError(f"User {user_id} not found")
        try:
            user_db.reminder_pref = encode_reminder(value)
            user_db.updated_at = datetime.utcnow()
            self.db.commit()
            return decode_reminder(user_db.reminder_pref)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to save reminder preference for {user_id}: {type(e).__name__}: {str(e)}")
            raise
