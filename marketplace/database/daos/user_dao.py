"""
User DAO

Purpose
-------
Thin data-access layer for the `User` ORM entity. Provides:
- Creation with password hashing
- Lookup by id, username, email or one-time token hash
- Filtered listings and counts for the admin area
- Username/email search for starting chats

Design
------
- The DAO expects an active SQLAlchemy `Session` supplied by the caller
  (normally injected by ``@transactional``).
- Business rules (uniqueness messages, lockout, RBAC) live in the core layer.
- Passwords are hashed using `EncryptionDec.hash_password(...)` before insert.

Error Handling
--------------
- Each method catches generic `Exception`, logs a message, and re-raises.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from marketplace.crypt.encrypt_decrypt import EncryptionDec
from marketplace.database.entities.user import User

logger = logging.getLogger("uvicorn")


class UserDao:
    """
    Data Access Object (DAO) for managing User entities.
    """

    def createUser(self, session: Session, user_data: User) -> User:
        """
        Create a new user in the database with a hashed password.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        user_data : User
            User entity whose ``password`` still holds the plaintext.

        Returns
        -------
        User
            The staged (flushed) user.

        Raises
        ------
        Exception
            If hashing or insertion fails.
        """
        try:
            enc = EncryptionDec()
            user_data.password = enc.hash_password(text=user_data.password)
            session.add(user_data)
            session.flush()
            return user_data
        except Exception as e:
            logger.error(f"Error in UserDao.createUser. Error Message: {e}")
            raise e

    def fetchUserById(self, session: Session, user_id: uuid.UUID) -> Optional[User]:
        """
        Fetch a user by primary key.

        Returns
        -------
        User | None
            The user, or None when the id is unknown.
        """
        try:
            return session.get(User, user_id)
        except Exception as e:
            logger.error(f"Error in UserDao.fetchUserById. Error Message: {e}")
            raise e

    def fetchUsersByIds(self, session: Session, user_ids: List[uuid.UUID]) -> List[User]:
        try:
            if not user_ids:
                return []
            return session.query(User).filter(User.id.in_(user_ids)).all()
        except Exception as e:
            logger.error(f"Error in UserDao.fetchUsersByIds. Error Message: {e}")
            raise e

    def fetchUserByEmail(self, session: Session, email: str) -> Optional[User]:
        """
        Fetch a user by email (case-insensitive).

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        email : str
            Email address of the user.

        Returns
        -------
        User | None
        """
        try:
            return session.query(User).filter(User.email == email.strip().lower()).first()
        except Exception as e:
            logger.error(f"Error in UserDao.fetchUserByEmail. Error Message: {e}")
            raise e

    def fetchUserByUsername(self, session: Session, username: str) -> Optional[User]:
        try:
            return session.query(User).filter(User.username == username.strip()).first()
        except Exception as e:
            logger.error(f"Error in UserDao.fetchUserByUsername. Error Message: {e}")
            raise e

    def fetchUserByVerificationToken(self, session: Session, token_hash: str) -> Optional[User]:
        try:
            return session.query(User).filter(User.email_verification_token == token_hash).first()
        except Exception as e:
            logger.error(f"Error in UserDao.fetchUserByVerificationToken. Error Message: {e}")
            raise e

    def fetchUserByResetToken(self, session: Session, token_hash: str) -> Optional[User]:
        try:
            return session.query(User).filter(User.reset_password_token == token_hash).first()
        except Exception as e:
            logger.error(f"Error in UserDao.fetchUserByResetToken. Error Message: {e}")
            raise e

    def fetchUsers(
        self,
        session: Session,
        user_type: Optional[str] = None,
        admins_only: bool = False,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[User]:
        """
        List users, newest first.

        Parameters
        ----------
        user_type : str | None
            Restrict to one ``user_type``.
        admins_only : bool
            Restrict to accounts with ``is_admin``.
        search : str | None
            Case-insensitive match on username or email.
        """
        try:
            query = self._filtered(session, user_type, admins_only, search)
            query = query.order_by(User.created_at.desc()).offset(offset)
            if limit:
                query = query.limit(limit)
            return query.all()
        except Exception as e:
            logger.error(f"Error in UserDao.fetchUsers. Error Message: {e}")
            raise e

    def countUsers(
        self,
        session: Session,
        user_type: Optional[str] = None,
        admins_only: bool = False,
        search: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> int:
        """Count users matching the filters; ``created_from`` inclusive, ``created_to`` exclusive."""
        try:
            query = self._filtered(session, user_type, admins_only, search)
            if created_from is not None:
                query = query.filter(User.created_at >= created_from)
            if created_to is not None:
                query = query.filter(User.created_at < created_to)
            return query.with_entities(func.count(User.id)).scalar() or 0
        except Exception as e:
            logger.error(f"Error in UserDao.countUsers. Error Message: {e}")
            raise e

    def searchUsers(self, session: Session, query_text: str, exclude_id: uuid.UUID, limit: int = 10) -> List[User]:
        """Find non-deactivated users whose username or email contains ``query_text``."""
        try:
            pattern = f"%{query_text.strip()}%"
            return (
                session.query(User)
                .filter(User.id != exclude_id)
                .filter(User.is_deactivated.is_(False))
                .filter(or_(User.username.ilike(pattern), User.email.ilike(pattern)))
                .order_by(User.username.asc())
                .limit(limit)
                .all()
            )
        except Exception as e:
            logger.error(f"Error in UserDao.searchUsers. Error Message: {e}")
            raise e

    def countAdminsWithRole(self, session: Session, role_name: str) -> int:
        try:
            return (
                session.query(func.count(User.id))
                .filter(User.is_admin.is_(True))
                .filter(User.admin_role == role_name)
                .scalar()
                or 0
            )
        except Exception as e:
            logger.error(f"Error in UserDao.countAdminsWithRole. Error Message: {e}")
            raise e

    def _filtered(self, session: Session, user_type, admins_only, search):
        query = session.query(User)
        if user_type:
            query = query.filter(User.user_type == user_type)
        if admins_only:
            query = query.filter(User.is_admin.is_(True))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(User.username.ilike(pattern), User.email.ilike(pattern)))
        return query
