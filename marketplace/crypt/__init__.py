"""
The `crypt` package provides the cryptographic utilities of the marketplace.

Contents
--------
- encrypt_decrypt
    Utility module exposing the `EncryptionDec` class:
        * `hash_password` / `check_passwords`: bcrypt password storage
        * `is_valid_password`: minimum length rule (6+)
        * `generate_token` / `hash_token`: one-time email verification and
          password reset tokens, stored as SHA-256 digests
- aes_cipher
    `AESCipher`: passphrase-based AES-256-CBC compatible with CryptoJS, used to
    wrap request and response bodies as `{"data": <ciphertext>}`.
"""
