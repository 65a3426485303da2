"""
Conversation DAO

Purpose
-------
Provides a thin data-access layer for the `Conversation` ORM entity:
- Create conversations
- Query by id, by participant, or the direct (two-person) thread between two users
- Deactivate conversations

Design
------
- Requires an active SQLAlchemy `Session` supplied by the caller (no session
  creation inside the DAO). This keeps transaction boundaries in the service
  layer where they belong.
- Participant queries join the ``conversation_participant`` association table.

Usage
-----
.. code-block:: python

    dao = ConversationDao()
    convs = dao.fetchUserConversations(session, user_id)        # newest activity first
    direct = dao.fetchDirectConversation(session, user_a, user_b)
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.database.entities.conversations import Conversation, conversation_participant
from marketplace.database.entities.user import User  # noqa: F401  (relationship target)

logger = logging.getLogger("uvicorn")


class ConversationDao:
    """
    Data Access Object (DAO) for managing Conversation entities.
    """

    def createConversation(self, session: Session, conversation: Conversation) -> Conversation:
        """
        Stage a new conversation.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        conversation : Conversation
            Conversation with its participants attached.

        Returns
        -------
        Conversation
            The flushed conversation (unread counters initialised by the insert hook).
        """
        try:
            session.add(conversation)
            session.flush()
            return conversation
        except Exception as e:
            logger.error(f"Error in ConversationDao.createConversation. Error Message: {e}")
            raise e

    def fetchConversationById(self, session: Session, conversation_id: uuid.UUID) -> Optional[Conversation]:
        """
        Fetch a conversation by id.

        Returns
        -------
        Conversation | None
        """
        try:
            return session.get(Conversation, conversation_id)
        except Exception as e:
            logger.error(f"Error in ConversationDao.fetchConversationById. Error Message: {e}")
            raise e

    def fetchUserConversations(self, session: Session, user_id: uuid.UUID, active_only: bool = True) -> List[Conversation]:
        """
        Fetch conversations the user participates in, most recently updated first.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        user_id : uuid.UUID
            Participant id.
        active_only : bool, optional
            Skip deactivated conversations (default True).

        Returns
        -------
        list[Conversation]
        """
        try:
            query = (
                session.query(Conversation)
                .join(conversation_participant, conversation_participant.c.conversation_id == Conversation.id)
                .filter(conversation_participant.c.user_id == user_id)
            )
            if active_only:
                query = query.filter(Conversation.is_active.is_(True))
            return query.order_by(Conversation.updated_at.desc()).all()
        except Exception as e:
            logger.error(f"Error in ConversationDao.fetchUserConversations. Error Message: {e}")
            raise e

    def fetchDirectConversation(self, session: Session, user_id: uuid.UUID, other_id: uuid.UUID) -> Optional[Conversation]:
        """
        Find the active conversation whose participants are exactly the two users.

        Returns
        -------
        Conversation | None
        """
        try:
            wanted = {str(user_id), str(other_id)}
            for conversation in self.fetchUserConversations(session, user_id):
                if {str(pid) for pid in conversation.participant_ids()} == wanted:
                    return conversation
            return None
        except Exception as e:
            logger.error(f"Error in ConversationDao.fetchDirectConversation. Error Message: {e}")
            raise e
