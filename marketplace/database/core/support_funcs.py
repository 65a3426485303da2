"""
Contact, feedback and support forms.

Submissions are stored first; the team notification and the receipt to the
sender go out after commit and a failed email never fails the submission.
"""

import logging
from functools import partial
from typing import Optional

from sqlalchemy.orm import Session

from marketplace.database.core import mailer
from marketplace.database.daos.support_dao import SupportDao
from marketplace.database.entities.support_message import FEEDBACK_TYPES, SUPPORT_CATEGORIES, SupportMessage, ticket_number
from marketplace.database.helpers.ids import to_uuid_or_none
from marketplace.database.helpers.timeutils import utcnow
from marketplace.database.helpers.transactionManagement import after_commit, transactional
from marketplace.errors import BadRequestError

logger = logging.getLogger("uvicorn")


def _notify(kind: str, fullname: str, email: str, subject: str, message: str, ticket: Optional[str]) -> None:
    try:
        mailer.send_support_notification(kind=kind, fullname=fullname, email=email, subject=subject, message=message)
    except Exception as e:
        logger.error(f"Support notification for {kind} message failed: {e}")
    try:
        mailer.send_support_receipt(email=email, fullname=fullname, subject=subject, ticket_number=ticket)
    except Exception as e:
        logger.error(f"Support receipt to {email} failed: {e}")


def _store(session: Session, message: SupportMessage) -> SupportMessage:
    SupportDao().createMessage(session=session, message=message)
    after_commit(partial(_notify, message.kind, message.fullname, message.email, message.subject, message.message, message.ticket_number))
    logger.info(f"Stored {message.kind} message from {message.email}")
    return message


@transactional
def send_contact_message(
    session: Session, fullname: str, email: str, subject: str, message: str, phone_number: str = "", user_id: Optional[str] = None
) -> dict:
    _store(
        session,
        SupportMessage(
            kind="contact", user_id=to_uuid_or_none(user_id), fullname=fullname, email=email, phone_number=phone_number, subject=subject, message=message
        ),
    )
    return {"message": "Your message has been sent successfully. We will contact you soon."}


@transactional
def send_feedback(
    session: Session,
    fullname: str,
    email: str,
    feedback: str,
    suggestions: str = "",
    feedback_type: str = "general",
    rating: int = 0,
    user_id: Optional[str] = None,
) -> dict:
    if feedback_type not in FEEDBACK_TYPES:
        raise BadRequestError(f"Invalid feedback type: {feedback_type}")
    _store(
        session,
        SupportMessage(
            kind="feedback",
            user_id=to_uuid_or_none(user_id),
            fullname=fullname,
            email=email,
            message=feedback,
            suggestions=suggestions,
            feedback_type=feedback_type,
            rating=rating,
        ),
    )
    return {"message": "Thank you for your feedback!"}


@transactional
def create_support_request(
    session: Session,
    fullname: str,
    email: str,
    subject: str,
    message: str,
    phone_number: str = "",
    support_category: str = "other",
    user_id: Optional[str] = None,
) -> dict:
    """
    Open a support ticket.

    Returns
    -------
    dict
        ``{"message", "ticket_number"}``; the number has the form
        ``SUP-YYYYMMDD-NNNN``.
    """
    if support_category not in SUPPORT_CATEGORIES:
        raise BadRequestError(f"Invalid support category: {support_category}")
    request = SupportMessage(
        kind="support",
        user_id=to_uuid_or_none(user_id),
        fullname=fullname,
        email=email,
        phone_number=phone_number,
        subject=subject,
        message=message,
        category=support_category,
    )
    support_dao = SupportDao()
    while support_dao.fetchByTicketNumber(session=session, ticket_number=request.ticket_number) is not None:
        request.ticket_number = ticket_number(utcnow())
    _store(session, request)
    return {
        "message": f"Your support request has been submitted successfully. Your ticket number is {request.ticket_number}.",
        "ticket_number": request.ticket_number,
    }
