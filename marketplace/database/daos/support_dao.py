"""
SupportMessage DAO

Stores contact, feedback and support form submissions.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from marketplace.database.entities.support_message import SupportMessage

logger = logging.getLogger("uvicorn")


class SupportDao:
    """Data Access Object (DAO) for SupportMessage entities."""

    def createMessage(self, session: Session, message: SupportMessage) -> SupportMessage:
        try:
            session.add(message)
            session.flush()
            return message
        except Exception as e:
            logger.error(f"Error in SupportDao.createMessage. Error Message: {e}")
            raise e

    def fetchByTicketNumber(self, session: Session, ticket_number: str) -> Optional[SupportMessage]:
        try:
            return session.query(SupportMessage).filter(SupportMessage.ticket_number == ticket_number).first()
        except Exception as e:
            logger.error(f"Error in SupportDao.fetchByTicketNumber. Error Message: {e}")
            raise e
