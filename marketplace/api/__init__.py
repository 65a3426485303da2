"""
API Package: Routers • Models • JWT Utils • Encryption • Presence
=================================================================

Contents
--------
- account_api, supplier_api, client_api, public_api, admin_api, chat_api
    FastAPI routers mounted under ``/account``, ``/supplier``, ``/client``,
    ``/public``, ``/admin`` and ``/chat``.
- ws_api
    The ``/ws`` chat socket and ``/api/websocket-status``.
- models
    Pydantic request contracts, validated after decryption.
- utils
    Session tokens: ``issue_access_token`` / ``verify_token`` and the ``token`` cookie.
- auth
    Dependencies resolving the caller from a Bearer header or ``token``
    cookie, with supplier/client/admin/super-admin/permission guards.
- encryption
    ``{"data": <ciphertext>}`` request unwrapping and response wrapping.
- errors
    Exception handlers rendering ``{"error": message}``.
- uploads
    Multipart image persistence under ``UPLOAD_DIR``.
- presence
    In-memory connection registry, rooms and idle cleanup.
"""
