"""
Message DAO

Purpose
-------
Data-access layer for chat `Message` records:
- Create messages within a conversation
- Page through a conversation newest first, skipping deleted messages
- Collect the messages a user has not read yet

Notes
-----
``read_by`` is a JSON list, so unread filtering happens in Python on the
conversation's non-deleted messages from other senders.
"""

import logging
import uuid
from typing import List

from sqlalchemy.orm import Session

from marketplace.database.entities.messages import Message

logger = logging.getLogger("uvicorn")


class MessageDao:
    """
    Data Access Object (DAO) for Message entities.
    """

    def createMessage(self, session: Session, message: Message) -> Message:
        """
        Stage a message.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        message : Message
            Message entity to insert.

        Returns
        -------
        Message
        """
        try:
            session.add(message)
            session.flush()
            return message
        except Exception as e:
            logger.error(f"Error in MessageDao.createMessage. Error Message: {e}")
            raise e

    def fetchMessages(self, session: Session, conversation_id: uuid.UUID, limit: int = 50, offset: int = 0) -> List[Message]:
        """
        Fetch a page of non-deleted messages, newest first.

        Parameters
        ----------
        conversation_id : uuid.UUID
            Conversation to read.
        limit : int
            Page size.
        offset : int
            Number of messages to skip.
        """
        try:
            return (
                session.query(Message)
                .filter(Message.conversation_id == conversation_id, Message.is_deleted.is_(False))
                .order_by(Message.created_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        except Exception as e:
            logger.error(f"Error in MessageDao.fetchMessages. Error Message: {e}")
            raise e

    def countMessages(self, session: Session, conversation_id: uuid.UUID) -> int:
        try:
            return (
                session.query(Message)
                .filter(Message.conversation_id == conversation_id, Message.is_deleted.is_(False))
                .count()
            )
        except Exception as e:
            logger.error(f"Error in MessageDao.countMessages. Error Message: {e}")
            raise e

    def fetchUnreadMessages(self, session: Session, conversation_id: uuid.UUID, user_id: uuid.UUID) -> List[Message]:
        """Messages from other senders that ``user_id`` has not read."""
        try:
            candidates = (
                session.query(Message)
                .filter(
                    Message.conversation_id == conversation_id,
                    Message.sender_id != user_id,
                    Message.is_deleted.is_(False),
                )
                .all()
            )
            key = str(user_id)
            return [m for m in candidates if key not in (m.read_by or [])]
        except Exception as e:
            logger.error(f"Error in MessageDao.fetchUnreadMessages. Error Message: {e}")
            raise e
