"""
Helpers shared by entities, DAOs and services.

Contents
--------
- transactionManagement
    The ``@transactional`` unit-of-work decorator and the
    ``db_session_context`` variable that carries the active session into
    nested service calls.
- ids
    UUID coercion; malformed ids raise ``InvalidIdError`` (400 ``Invalid id``).
- text
    URL slugs, ``ORD-``/``CLT-``/``PO-`` document numbers, truncation.
- timeutils
    UTC helpers: `utcnow`, `ensure_aware` (SQLite returns naive datetimes), `parse_datetime`, `isoformat`.
"""
