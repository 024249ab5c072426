from __future__ import annotations

import re
import secrets

from passlib.context import CryptContext


SALT_ROUNDS = 12
# Excludes look-alike characters (0/O, 1/I/L)
MEMORABLE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MIN_CODE_LENGTH = 12


class PasswordManager:
    """bcrypt hashing and generation helpers for access codes."""

    def __init__(self, rounds: int = SALT_ROUNDS) -> None:
        self.context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash_password(self, password: str) -> str:
        return self.context.hash(password)

    def verify_password(self, password: str, hashed_password: str) -> bool:
        return self.context.verify(password, hashed_password)

    @staticmethod
    def generate_secure_code(length: int = 16) -> str:
        return secrets.token_urlsafe(length)[:length]

    @staticmethod
    def generate_memorable_code(prefix: str, length: int = 8) -> str:
        body = "".join(secrets.choice(MEMORABLE_ALPHABET) for _ in range(length))
        return f"{prefix.upper()}-{body}"

    @staticmethod
    def validate_code_strength(code: str) -> tuple[bool, str]:
        if len(code) < MIN_CODE_LENGTH:
            return False, f"Access code must be at least {MIN_CODE_LENGTH} characters long"
        if not (re.search(r"[A-Z]", code) and re.search(r"[a-z]", code) and re.search(r"\d", code)):
            return False, "Access code must contain uppercase, lowercase, and numbers"
        return True, "Access code is strong"


password_manager = PasswordManager()
