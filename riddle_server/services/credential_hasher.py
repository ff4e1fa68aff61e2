"""
Riddle Server — Credential Hasher
==================================

What:  Salted one-way hashing and verification of player passwords.
How:   passlib's CryptContext with the bcrypt scheme. bcrypt embeds a fresh
       random salt and the cost factor in every hash, so hashing the same
       password twice yields two different strings, and verification needs
       only the stored hash.
Who:   Used by AuthService for registration and login.

Concurrency:
    bcrypt is deliberately CPU-bound (~50-100ms at cost 10). Both operations
    run in Starlette's thread pool so a login does not stall every other
    in-flight request on the event loop.
"""

import logging
from typing import Optional

from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from riddle_server.config import settings
from riddle_server.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


class CredentialHasher:
    """
    Thin async wrapper around a bcrypt CryptContext.

    Args:
        rounds: bcrypt cost factor (defaults to settings.bcrypt_rounds)
    """

    def __init__(self, rounds: Optional[int] = None):
        self.rounds = rounds or settings.bcrypt_rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=self.rounds,
        )

    async def hash(self, password: str) -> str:
        """
        Hash a plaintext password.

        Raises:
            InvalidInputError: If password is empty or not a string.
        """
        if not password or not isinstance(password, str):
            raise InvalidInputError("Password must be a non-empty string", field="password")
        return await run_in_threadpool(self._context.hash, password)

    async def verify(self, password: str, password_hash: str) -> bool:
        """
        Check a plaintext password against a stored hash.

        Returns:
            True iff the password reproduces the hash. A hash that passlib
            cannot parse counts as a mismatch.

        Raises:
            InvalidInputError: If either argument is missing.
        """
        if not password or not password_hash:
            raise InvalidInputError("Password and hash are required")
        try:
            return await run_in_threadpool(self._context.verify, password, password_hash)
        except ValueError:
            logger.warning("Stored password hash could not be parsed")
            return False


credential_hasher = CredentialHasher()
