"""
ChatStatus & Notification DAOs

Purpose
-------
Persistence for presence (`ChatStatus`, one row per user) and in-app
`Notification` records.

Design
------
- Methods expect an active SQLAlchemy `Session` and never commit.
- Presence rows are created lazily, so every user reads as offline until
  their first connection.

Error Handling
--------------
- Each method catches generic `Exception`, logs a message, and re-raises.
"""

import logging
import uuid
from typing import List

from sqlalchemy.orm import Session

from marketplace.database.entities.chat_status import ChatStatus
from marketplace.database.entities.notification import Notification

logger = logging.getLogger("uvicorn")


class ChatStatusDao:
    """Data Access Object (DAO) for ChatStatus entities."""

    def fetchOrCreateStatus(self, session: Session, user_id: uuid.UUID) -> ChatStatus:
        """
        Return the user's status row, creating an offline one if missing.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        user_id : uuid.UUID
            User whose presence is requested.

        Returns
        -------
        ChatStatus
            The existing row or a new flushed one.
        """
        try:
            status = session.query(ChatStatus).filter(ChatStatus.user_id == user_id).first()
            if status is None:
                status = ChatStatus(user_id=user_id)
                session.add(status)
                session.flush()
            return status
        except Exception as e:
            logger.error(f"Error in ChatStatusDao.fetchOrCreateStatus. Error Message: {e}")
            raise e

    def fetchStatuses(self, session: Session, user_ids: List[uuid.UUID]) -> List[ChatStatus]:
        """
        Fetch the existing status rows of several users.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        user_ids : List[uuid.UUID]
            Users to look up; an empty list returns an empty list.

        Returns
        -------
        List[ChatStatus]
            Rows found; users that never connected have none.
        """
        try:
            if not user_ids:
                return []
            return session.query(ChatStatus).filter(ChatStatus.user_id.in_(user_ids)).all()
        except Exception as e:
            logger.error(f"Error in ChatStatusDao.fetchStatuses. Error Message: {e}")
            raise e


class NotificationDao:
    """Data Access Object (DAO) for Notification entities."""

    def createNotification(self, session: Session, notification: Notification) -> Notification:
        """
        Stage a notification; it is written with the surrounding unit of work.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        notification : Notification
            Unsaved notification.

        Returns
        -------
        Notification
            The staged notification.
        """
        try:
            session.add(notification)
            return notification
        except Exception as e:
            logger.error(f"Error in NotificationDao.createNotification. Error Message: {e}")
            raise e

    def fetchNotifications(self, session: Session, recipient_id: uuid.UUID, limit: int = 20, offset: int = 0) -> List[Notification]:
        """
        Page through a recipient's notifications.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        recipient_id : uuid.UUID
            Owner of the notifications.
        limit : int, default 20
            Page size.
        offset : int, default 0
            Rows to skip.

        Returns
        -------
        List[Notification]
            Newest first.
        """
        try:
            return (
                session.query(Notification)
                .filter(Notification.recipient_id == recipient_id)
                .order_by(Notification.created_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        except Exception as e:
            logger.error(f"Error in NotificationDao.fetchNotifications. Error Message: {e}")
            raise e

    def countNotifications(self, session: Session, recipient_id: uuid.UUID, unread_only: bool = False) -> int:
        """
        Count a recipient's notifications.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        recipient_id : uuid.UUID
            Owner of the notifications.
        unread_only : bool, default False
            Count only notifications with ``is_read`` false.

        Returns
        -------
        int
            Number of matching rows.
        """
        try:
            query = session.query(Notification).filter(Notification.recipient_id == recipient_id)
            if unread_only:
                query = query.filter(Notification.is_read.is_(False))
            return query.count()
        except Exception as e:
            logger.error(f"Error in NotificationDao.countNotifications. Error Message: {e}")
            raise e

    def markRead(self, session: Session, recipient_id: uuid.UUID, notification_ids: List[uuid.UUID]) -> int:
        """
        Mark the recipient's unread notifications as read.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        recipient_id : uuid.UUID
            Owner of the notifications; other users' ids are ignored.
        notification_ids : List[uuid.UUID]
            Notifications to mark; an empty list marks all of them.

        Returns
        -------
        int
            Number of notifications that changed.
        """
        try:
            query = session.query(Notification).filter(
                Notification.recipient_id == recipient_id, Notification.is_read.is_(False)
            )
            if notification_ids:
                query = query.filter(Notification.id.in_(notification_ids))
            updated = 0
            for notification in query.all():
                notification.is_read = True
                updated += 1
            return updated
        except Exception as e:
            logger.error(f"Error in NotificationDao.markRead. Error Message: {e}")
            raise e
