"""Account sign-up and log-in.

Accounts only reserve a display name; there are no sessions or tokens.
"""

import logging
from typing import Any

from passlib.context import CryptContext

from .errors import Conflict, InvalidInput, Unauthorized
from .merge import GUEST_NAME, utcnow
from .schemas import AccountRecord
from .stores import AccountStore

logger = logging.getLogger(__name__)

# pbkdf2_sha256 avoids the bcrypt backend quirks (72-byte limit, wrap-bug
# checks) and runs everywhere without a compiled extension.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Unrecognised hash format.
        return False


def _require_credentials(name: Any, password: Any) -> str:
    if not isinstance(name, str) or not isinstance(password, str) or not name or not password:
        raise InvalidInput("Name and password required")
    trimmed = name.strip()
    if not trimmed:
        raise InvalidInput("Invalid name")
    return trimmed


def sign_up(store: AccountStore, name: Any, password: Any) -> str:
    """Claim ``name``; returns the stored display name."""
    trimmed = _require_credentials(name, password)
    lower = trimmed.lower()
    if lower == GUEST_NAME:
        raise InvalidInput("That name is reserved")
    if store.find(lower) is not None:
        raise Conflict("User already exists")

    now = utcnow()
    account = AccountRecord(
        name=trimmed,
        nameLower=lower,
        passwordHash=hash_password(password),
        createdAt=now,
        updatedAt=now,
    )
    store.create(account)
    logger.info("Account created for %s", lower)
    return account.name


def log_in(store: AccountStore, name: Any, password: Any) -> str:
    if not isinstance(name, str) or not isinstance(password, str) or not name or not password:
        raise InvalidInput("Name and password required")
    # A blank name after trimming is simply an unknown account.
    account = store.find(name) if name.strip() else None
    if account is None or not verify_password(password, account.passwordHash):
        raise Unauthorized("Invalid credentials")
    return account.name
