"""Password hashing for user accounts (passlib, bcrypt scheme)."""

from passlib.context import CryptContext

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a login attempt against the stored hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a new or changed password."""
    return pwd_context.hash(password)


def password_needs_rehash(hashed_password: str) -> bool:
    """
    Whether a stored hash uses outdated parameters.

    Login upgrades such hashes in place once the password has been verified.
    """
    return pwd_context.needs_update(hashed_password)
