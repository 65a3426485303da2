"""
Request/response body encryption.

Incoming JSON bodies of the form ``{"data": "<ciphertext>"}`` are decrypted
before validation; bodies without ``data`` pass through unchanged.
Successful responses are wrapped as ``{"data": "<ciphertext>"}`` while error
bodies stay plain ``{"error": ...}``.
"""

import json
import logging
from typing import Any, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from marketplace.crypt.aes_cipher import AESCipher, DecryptionError
from marketplace.database.config.config import settings

logger = logging.getLogger("uvicorn")

cipher = AESCipher(settings.AES_SECRET_KEY)
"""Cipher bound to the configured static passphrase."""

INVALID_ENCRYPTED_DATA = "Invalid encrypted data"


def encrypt_data(payload: Any) -> str:
    return cipher.encrypt_json(payload)


def decrypt_data(token: str) -> Any:
    return cipher.decrypt_json(token)


def unwrap(body: Any) -> Any:
    """Decrypt ``body["data"]`` when present, otherwise return ``body`` as is."""
    if isinstance(body, dict) and body.get("data"):
        try:
            return decrypt_data(body["data"])
        except DecryptionError as e:
            logger.info(f"Decryption error: {e}")
            raise HTTPException(status_code=400, detail=INVALID_ENCRYPTED_DATA)
    return body


async def decrypted_body(request: Request) -> dict:
    """
    FastAPI dependency returning the decrypted JSON body.

    An empty body yields ``{}``; a body that is not JSON, or whose ``data``
    cannot be decrypted, yields 400 ``Invalid encrypted data``.
    """
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail=INVALID_ENCRYPTED_DATA)
    body = unwrap(body)
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail=INVALID_ENCRYPTED_DATA)
    return body


def decrypt_form_field(value: Optional[str]) -> dict:
    """Decode the ``data`` field of a multipart request (ciphertext or plain JSON)."""
    if not value:
        return {}
    try:
        return unwrap({"data": value})
    except HTTPException:
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            raise HTTPException(status_code=400, detail=INVALID_ENCRYPTED_DATA)
        return parsed if isinstance(parsed, dict) else {}


def encrypted_response(payload: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"data": encrypt_data(payload)})
