"""Password hashing (bcrypt through pwdlib)."""

import logging
from functools import cache

from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError
from pwdlib.hashers.bcrypt import BcryptHasher

from src.config.settings import settings

logger = logging.getLogger(__name__)

pwd_hasher = PasswordHash((BcryptHasher(rounds=settings.password_hash_rounds),))


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    Salt is generated per call and embedded in the returned hash.
    """
    return pwd_hasher.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against a stored hash.

    Never raises: an unknown or malformed hash simply does not match.
    """
    try:
        return pwd_hasher.verify(plain_password, hashed_password)
    except (UnknownHashError, ValueError, TypeError) as exc:
        logger.warning(f"Password verification against malformed hash: {type(exc).__name__}")
        return False


@cache
def _dummy_hash() -> str:
    return hash_password("dummy-password-for-timing")


def burn_verification(plain_password: str) -> None:
    """Spend the same work as a real verification.

    Used when the account does not exist so unknown emails and wrong
    passwords take comparable time.
    """
    verify_password(plain_password, _dummy_hash())
