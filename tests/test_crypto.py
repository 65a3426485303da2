import base64
import hashlib
import time

import pytest
from jose import jwt

from marketplace.api.utils import issue_access_token, verify_token
from marketplace.crypt.aes_cipher import SALT_HEADER, AESCipher, DecryptionError, evp_bytes_to_key
from marketplace.crypt.encrypt_decrypt import EncryptionDec
from marketplace.database.config.config import settings


def test_ciphertext_is_openssl_salted_base64():
    token = AESCipher("passphrase").encrypt("hello world")
    raw = base64.b64decode(token)
    assert raw.startswith(SALT_HEADER)
    # header + 8-byte salt + one 16-byte block
    assert len(raw) == 8 + 8 + 16


def test_key_derivation_follows_evp_bytes_to_key():
    salt = b"\x01\x02\x03\x04\x05\x06\x07\x08"
    key, iv = evp_bytes_to_key(b"pass", salt)
    first = hashlib.md5(b"pass" + salt).digest()
    second = hashlib.md5(first + b"pass" + salt).digest()
    third = hashlib.md5(second + b"pass" + salt).digest()
    assert key == first + second
    assert iv == third


def test_fixed_salt_gives_deterministic_ciphertext():
    cipher = AESCipher("passphrase")
    salt = b"saltsalt"
    assert cipher.encrypt("same text", salt=salt) == cipher.encrypt("same text", salt=salt)
    assert cipher.encrypt("same text") != cipher.encrypt("same text")


def test_json_payload_survives_encryption():
    cipher = AESCipher("passphrase")
    payload = {"title": "Café", "price": 12.5, "tags": ["a", "b"], "nested": {"ok": True}}
    assert cipher.decrypt_json(cipher.encrypt_json(payload)) == payload


@pytest.mark.parametrize("token", ["", "not base64!!", base64.b64encode(b"no header here at all").decode()])
def test_malformed_ciphertext_is_rejected(token):
    with pytest.raises(DecryptionError):
        AESCipher("passphrase").decrypt(token)


def test_wrong_passphrase_is_rejected():
    token = AESCipher("right").encrypt_json({"secret": "value"})
    with pytest.raises(DecryptionError):
        AESCipher("wrong").decrypt_json(token)


def test_password_hashing():
    enc = EncryptionDec()
    hashed = enc.hash_password(text="secret123")
    assert hashed != "secret123"
    assert enc.check_passwords("secret123", hashed)
    assert not enc.check_passwords("other", hashed)
    assert not enc.check_passwords("secret123", "not-a-bcrypt-hash")


def test_password_rules_and_tokens():
    enc = EncryptionDec()
    assert enc.is_valid_password("123456")
    assert not enc.is_valid_password("12345")
    assert not enc.is_valid_password(None)
    token = enc.generate_token()
    assert len(token) == 40
    assert enc.hash_token(token) == hashlib.sha256(token.encode()).hexdigest()


def test_access_token_round_trip():
    token = issue_access_token("user-1", "client")
    assert verify_token(token) == "user-1"
    claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert claims["exp"] > time.time()


def test_invalid_access_tokens():
    assert verify_token(None) is None
    assert verify_token("garbage") is None
    forged = jwt.encode({"sub": "user-1", "exp": int(time.time()) + 60}, "another-key", algorithm="HS256")
    assert verify_token(forged) is None
    expired = jwt.encode({"sub": "user-1", "exp": int(time.time()) - 60}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    assert verify_token(expired) is None
