"""Tests for password hashing."""

import pytest

from practicum.auth.passwords import CredentialHasher, CredentialHasherError


@pytest.fixture
def hasher():
    return CredentialHasher(iterations=1_000)


class TestCredentialHasher:
    @pytest.mark.asyncio
    async def test_hash_and_compare(self, hasher):
        hashed = await hasher.hash("s3cret-pass")

        assert await hasher.compare("s3cret-pass", hashed) is True
        assert await hasher.compare("wrong-pass", hashed) is False

    @pytest.mark.asyncio
    async def test_hash_is_salted(self, hasher):
        first = await hasher.hash("same")
        second = await hasher.hash("same")

        assert first != second
        assert await hasher.compare("same", first)
        assert await hasher.compare("same", second)

    @pytest.mark.asyncio
    async def test_work_factor_travels_with_hash(self, hasher):
        hashed = await hasher.hash("pw")
        algorithm, iterations, salt, digest = hashed.split("$")

        assert algorithm == "pbkdf2_sha256"
        assert iterations == "1000"
        assert "pw" not in hashed

        # A hasher configured differently still verifies old hashes
        assert await CredentialHasher(iterations=2_000).compare("pw", hashed)

    @pytest.mark.asyncio
    async def test_malformed_hash_is_an_error_not_a_mismatch(self, hasher):
        with pytest.raises(CredentialHasherError):
            await hasher.compare("pw", "not-a-hash")

        with pytest.raises(CredentialHasherError):
            await hasher.compare("pw", "bcrypt$10$salt$digest")

    def test_rejects_non_positive_iterations(self):
        with pytest.raises(ValueError):
            CredentialHasher(iterations=0)
