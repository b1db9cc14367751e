"""
Sanctuary Backend — Password Hashing
======================================

What:  Salted adaptive hashing (bcrypt) plus random password generation.
How:   bcrypt.hashpw / bcrypt.checkpw with the configured cost factor
       (default 10). Both calls are CPU-bound, so they run in a worker
       thread to keep the event loop responsive.
"""

import asyncio
import secrets
import string
from typing import Optional

import bcrypt

from sanctuary.config import Settings, settings as default_settings

# Alphabet for generated passwords (forgot-password flow)
PASSWORD_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
GENERATED_PASSWORD_LENGTH = 10


class PasswordService:
    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        self.rounds = config.bcrypt_rounds

    def hash_sync(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify_sync(self, password: str, password_hash: str) -> bool:
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            # Stored value is not a bcrypt hash
            return False

    async def hash(self, password: str) -> str:
        return await asyncio.to_thread(self.hash_sync, password)

    async def verify(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(self.verify_sync, password, password_hash)

    @staticmethod
    def generate(length: int = GENERATED_PASSWORD_LENGTH) -> str:
        """Random password; each character drawn uniformly from PASSWORD_ALPHABET."""
        return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


password_service = PasswordService()
