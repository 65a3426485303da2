"""
AES payload encryption for request and response bodies.

Wire format (OpenSSL / CryptoJS passphrase mode)
------------------------------------------------
``base64( b"Salted__" + salt[8] + AES-256-CBC(PKCS#7(plaintext)) )``

The 32-byte key and 16-byte IV are derived from the passphrase and the random
salt with OpenSSL's ``EVP_BytesToKey`` (one MD5 iteration), so a browser
running ``CryptoJS.AES.encrypt(JSON.stringify(obj), passphrase).toString()``
produces ciphertext this module decrypts, and vice versa.

There is no integrity tag: this obfuscates payloads in transit and is not an
authentication boundary.
"""

import base64
import binascii
import hashlib
import json
import os
from typing import Any, Tuple

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

SALT_HEADER = b"Salted__"
KEY_SIZE = 32
IV_SIZE = 16
SALT_SIZE = 8


class DecryptionError(ValueError):
    """Raised when ciphertext is malformed or was produced with another passphrase."""


def evp_bytes_to_key(passphrase: bytes, salt: bytes, key_size: int = KEY_SIZE, iv_size: int = IV_SIZE) -> Tuple[bytes, bytes]:
    """Derive key and IV the way OpenSSL's ``EVP_BytesToKey`` does with MD5."""
    derived = b""
    block = b""
    while len(derived) < key_size + iv_size:
        block = hashlib.md5(block + passphrase + salt).digest()
        derived += block
    return derived[:key_size], derived[key_size:key_size + iv_size]


class AESCipher:
    """
    Passphrase-based AES-256-CBC cipher.

    Parameters
    ----------
    passphrase : str
        Shared secret; the same value must be configured on the client.

    Example
    -------
    >>> cipher = AESCipher("s3cret")
    >>> cipher.decrypt(cipher.encrypt("hello"))
    'hello'
    """

    def __init__(self, passphrase: str):
        self.passphrase = passphrase.encode("utf-8")

    def encrypt(self, plaintext: str, salt: bytes = None) -> str:
        salt = salt or os.urandom(SALT_SIZE)
        key, iv = evp_bytes_to_key(self.passphrase, salt)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return base64.b64encode(SALT_HEADER + salt + ciphertext).decode("ascii")

    def decrypt(self, token: str) -> str:
        """
        Decrypt a base64 ``Salted__`` token back to text.

        Raises
        ------
        DecryptionError
            On bad base64, a missing salt header, a wrong block length, bad
            padding or non UTF-8 plaintext.
        """
        if not isinstance(token, str) or not token:
            raise DecryptionError("Ciphertext must be a non-empty string")
        try:
            raw = base64.b64decode(token, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecryptionError("Ciphertext is not valid base64") from e
        if not raw.startswith(SALT_HEADER) or len(raw) < len(SALT_HEADER) + SALT_SIZE + IV_SIZE:
            raise DecryptionError("Ciphertext is missing the salt header")
        salt = raw[len(SALT_HEADER):len(SALT_HEADER) + SALT_SIZE]
        body = raw[len(SALT_HEADER) + SALT_SIZE:]
        if len(body) % IV_SIZE:
            raise DecryptionError("Ciphertext length is not a multiple of the block size")
        key, iv = evp_bytes_to_key(self.passphrase, salt)
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(body) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        try:
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except ValueError as e:
            raise DecryptionError("Ciphertext could not be decrypted") from e

    def encrypt_json(self, payload: Any) -> str:
        return self.encrypt(json.dumps(payload))

    def decrypt_json(self, token: str) -> Any:
        text = self.decrypt(token)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise DecryptionError("Decrypted payload is not JSON") from e
