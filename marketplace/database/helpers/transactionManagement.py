"""
Unit-of-work handling for the service layer.

Every ``*_funcs`` service is decorated with ``@transactional``. The outermost
call opens a session, stores it in a context variable and commits when the
service returns; services called from inside it pick up the same session, so
a checkout that decrements stock for several suppliers, or a chat send that
writes the message, unread counters and notifications, commits or rolls back
as one unit.

Services are always called with keyword arguments and never pass ``session``
themselves; the decorator injects it. Side effects that must not outlive a
rollback, such as notification emails, are queued with :func:`after_commit`.
"""

import contextvars
from functools import wraps
from typing import Callable

from sqlalchemy.orm import sessionmaker

from marketplace.database.config.connection_engine import connection_engine

db_session_context = contextvars.ContextVar("db_session_context", default=None)
"""Session of the unit of work currently running, if any."""

AFTER_COMMIT_KEY = "after_commit"

SessionFactory = sessionmaker(bind=connection_engine)


def transactional(func):
    """
    Run ``func`` inside the active unit of work, or a new one.

    Example
    -------
    >>> @transactional
    ... def archive_product(session, product_id):
    ...     product = session.get(Product, product_id)
    ...     product.status = "archived"
    ...     return {"product_id": str(product.id)}
    >>> archive_product(product_id=some_id)
    """

    @wraps(func)
    def wrap_func(*args, **kwargs):
        active = db_session_context.get()
        if active is not None:
            return func(*args, session=active, **kwargs)

        session = SessionFactory()
        token = db_session_context.set(session)
        try:
            result = func(*args, session=session, **kwargs)
            session.flush()
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            pending = session.info.pop(AFTER_COMMIT_KEY, [])
            session.close()
            db_session_context.reset(token)
        for callback in pending:
            callback()
        return result

    return wrap_func


def after_commit(callback: Callable[[], None]) -> None:
    """
    Run ``callback`` once the current unit of work has committed.

    Callbacks are discarded if the unit of work rolls back. Outside a unit of
    work the callback runs immediately.

    Parameters
    ----------
    callback : Callable[[], None]
        Zero-argument function; it runs with no session bound and should
        handle its own errors.
    """
    session = db_session_context.get()
    if session is None:
        callback()
        return
    session.info.setdefault(AFTER_COMMIT_KEY, []).append(callback)
