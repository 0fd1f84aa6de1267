"""
Password hashing.

Salted PBKDF2-SHA256 with a fixed work factor. Hashes are stored as
`pbkdf2_sha256$<iterations>$<salt>$<hex digest>` so the work factor
travels with the hash.

The hashing itself is CPU bound, so both operations run in a worker
thread and the event loop keeps serving other requests.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import secrets

logger = logging.getLogger(__name__)

ALGORITHM = "pbkdf2_sha256"


class CredentialHasherError(Exception):
    """
    The hasher itself failed (bad stored hash, internal error).

    Distinct from a wrong password, which is a plain `False`.
    """


class CredentialHasher:
    """Hash and compare passwords."""

    def __init__(self, iterations: int = 390_000):
        if iterations < 1:
            raise ValueError("iterations must be positive")
        self.iterations = iterations

    async def hash(self, password: str) -> str:
        try:
            return await asyncio.to_thread(self._hash, password, secrets.token_hex(16), self.iterations)
        except Exception as e:
            logger.error("Error hashing password: %s", type(e).__name__)
            raise CredentialHasherError("Error hashing password") from e

    async def compare(self, password: str, password_hash: str) -> bool:
        try:
            algorithm, iterations, salt, expected = password_hash.split("$")
            if algorithm != ALGORITHM:
                raise ValueError(f"Unsupported hash algorithm: {algorithm}")
            rounds = int(iterations)
        except (ValueError, AttributeError) as e:
            logger.error("Error comparing password: malformed stored hash")
            raise CredentialHasherError("Malformed password hash") from e

        try:
            candidate = await asyncio.to_thread(self._hash, password, salt, rounds)
        except Exception as e:
            logger.error("Error comparing password: %s", type(e).__name__)
            raise CredentialHasherError("Error comparing password") from e

        return secrets.compare_digest(candidate, password_hash)

    @staticmethod
    def _hash(password: str, salt: str, iterations: int) -> str:
        digest = hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            salt.encode("utf-8"),
            iterations=iterations,
        )
        return f"{ALGORITHM}${iterations}${salt}${digest.hex()}"
