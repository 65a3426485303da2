import bcrypt
import hashlib
import secrets


class EncryptionDec:
    """
    Account secrets: bcrypt password hashes and one-time link tokens.

    Verification and reset links carry a random hex token; only its SHA-256
    digest is stored on the user row, so a leaked table cannot be replayed
    against ``/account/verify_email`` or ``/account/reset_password``.
    """

    MIN_PASSWORD_LENGTH = 6

    def hash_password(self, text: str) -> str:
        """Return the bcrypt hash of ``text`` as a UTF-8 string."""
        return bcrypt.hashpw(text.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    def check_passwords(self, plain_text: str, passwd: str) -> bool:
        """
        Compare a plaintext password with a stored bcrypt hash.

        Returns
        -------
        bool
            False on mismatch and on a malformed stored hash.
        """
        try:
            return bcrypt.checkpw(plain_text.encode("utf-8"), passwd.encode("utf-8"))
        except ValueError:
            return False

    def is_valid_password(self, password: str) -> bool:
        return password is not None and len(password) >= self.MIN_PASSWORD_LENGTH

    def generate_token(self, nbytes: int = 20) -> str:
        return secrets.token_hex(nbytes)

    def hash_token(self, token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()
