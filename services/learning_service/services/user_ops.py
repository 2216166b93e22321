"""User accounts: registration, profile, password reset and group/section
affiliation.

Passwords are stored as PBKDF2-HMAC-SHA256 digests with a per-user salt.
Reset tokens are random, single use, and only their SHA-256 digest is kept.
"""

import hashlib
import hmac
import secrets
import uuid
from datetime import timedelta
from typing import Any, Optional
from urllib.parse import quote

from libs.common.config import get_settings
from libs.common.datetime_utils import as_utc, utc_now
from libs.common.emails.client import EmailClient, get_email_client
from libs.common.errors import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailed,
)
from libs.common.logging import get_logger
from services.learning_service.models import Course, User, UserRole
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

_PBKDF2_DIGEST = "sha256"
_PBKDF2_ITERATIONS = 150_000
MIN_PASSWORD_LENGTH = 6


# ---------- Password helpers ----------


def _generate_salt() -> str:
    return secrets.token_bytes(16).hex()


def _pbkdf2_hash(password: str, salt_hex: str) -> str:
    try:
        salt_bytes = bytes.fromhex(salt_hex)
    except ValueError:
        raise ValueError("Invalid salt for password hashing") from None
    return hashlib.pbkdf2_hmac(
        _PBKDF2_DIGEST,
        password.encode("utf-8"),
        salt_bytes,
        _PBKDF2_ITERATIONS,
    ).hex()


def hash_password(password: str) -> tuple[str, str]:
    """Returns ``(hash_hex, salt_hex)``."""
    salt_hex = _generate_salt()
    return _pbkdf2_hash(password, salt_hex), salt_hex


def verify_password(password: str, stored_hash: str, stored_salt: str) -> bool:
    try:
        derived = _pbkdf2_hash(password, stored_salt)
    except ValueError:
        return False
    return hmac.compare_digest(stored_hash or "", derived)


def _digest_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _check_password(password: Optional[str]) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    return password


# ---------- Lookups ----------


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(
        select(User).where(func.lower(User.email) == _normalize_email(email))
    )
    return result.scalar_one_or_none()


async def get_profile(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.enrolled_courses).selectinload(Course.coach))
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")
    return user


# ---------- Registration & profile ----------


async def register_user(
    db: AsyncSession,
    *,
    name: str,
    email: str,
    password: str,
    role: UserRole = UserRole.STUDENT,
) -> User:
    if not name or not email:
        raise ValidationFailed("Name and email are required")
    _check_password(password)

    email = _normalize_email(email)
    if await get_user_by_email(db, email):
        raise ConflictError("User already exists")

    password_hash, password_salt = hash_password(password)
    user = User(
        name=name.strip(),
        email=email,
        role=role,
        password_hash=password_hash,
        password_salt=password_salt,
    )
    db.add(user)
    await db.commit()
    logger.info("Registered %s user %s", role.value, user.id)
    return await get_profile(db, user.id)


async def update_profile(
    db: AsyncSession, *, user_id: uuid.UUID, updates: dict[str, Any]
) -> User:
    """Update name, email and optionally the password.

    A password change needs both ``current_password`` and ``new_password``.
    """
    user = await get_profile(db, user_id)

    if updates.get("name"):
        user.name = updates["name"].strip()

    if updates.get("email"):
        email = _normalize_email(updates["email"])
        if email != user.email:
            existing = await get_user_by_email(db, email)
            if existing and existing.id != user.id:
                raise ConflictError("Email is already in use")
            user.email = email

    current_password = updates.get("current_password")
    new_password = updates.get("new_password")
    if new_password:
        if not current_password or not verify_password(
            current_password, user.password_hash, user.password_salt
        ):
            raise ValidationFailed("Current password is incorrect")
        _check_password(new_password)
        user.password_hash, user.password_salt = hash_password(new_password)
        logger.info("User %s changed password", user_id)

    await db.commit()
    return await get_profile(db, user_id)


# ---------- Password reset ----------


async def request_password_reset(
    db: AsyncSession,
    *,
    email: str,
    email_client: Optional[EmailClient] = None,
) -> str:
    """Issue a reset token and email the link. Returns the raw token.

    Delivery failures are logged by the email client and do not fail the
    request.
    """
    if not email:
        raise ValidationFailed("Email is required")
    user = await get_user_by_email(db, email)
    if not user:
        raise NotFoundError("No user with that email")

    settings = get_settings()
    token = secrets.token_hex(32)
    user.reset_token_hash = _digest_token(token)
    user.reset_token_expires_at = utc_now() + timedelta(
        minutes=settings.PASSWORD_RESET_TTL_MINUTES
    )
    await db.commit()

    reset_url = (
        f"{settings.FRONTEND_URL.rstrip('/')}/reset-password"
        f"?token={token}&email={quote(user.email)}"
    )
    client = email_client or get_email_client()
    sent = await client.send_password_reset(
        to_email=user.email,
        reset_url=reset_url,
        ttl_minutes=settings.PASSWORD_RESET_TTL_MINUTES,
    )
    if not sent:
        logger.warning("Password reset email for user %s was not delivered", user.id)
    return token


async def reset_password(
    db: AsyncSession, *, email: str, token: str, new_password: str
) -> None:
    if not email or not token or not new_password:
        raise ValidationFailed("Missing fields")
    _check_password(new_password)

    user = await get_user_by_email(db, email)
    expires_at = as_utc(user.reset_token_expires_at) if user else None
    if (
        not user
        or not user.reset_token_hash
        or not hmac.compare_digest(user.reset_token_hash, _digest_token(token))
        or expires_at is None
        or expires_at <= utc_now()
    ):
        raise ValidationFailed("Invalid or expired token")

    user.password_hash, user.password_salt = hash_password(new_password)
    user.reset_token_hash = None
    user.reset_token_expires_at = None
    await db.commit()
    logger.info("Password reset completed for user %s", user.id)


# ---------- Group / section affiliation ----------


async def list_affiliations(db: AsyncSession) -> tuple[list[str], list[str]]:
    """Distinct non-empty group labels and section labels across all users."""
    groups = await db.execute(
        select(User.group_label)
        .where(User.group_label != "")
        .distinct()
        .order_by(User.group_label)
    )
    sections = await db.execute(
        select(User.section_label)
        .where(User.section_label != "")
        .distinct()
        .order_by(User.section_label)
    )
    return list(groups.scalars().all()), list(sections.scalars().all())


async def join_affiliation(
    db: AsyncSession, *, user_id: uuid.UUID, group: str, section: str
) -> User:
    group = (group or "").strip()
    section = (section or "").strip()
    if not group or not section:
        raise ValidationFailed("Group and section are required")

    user = await db.get(User, user_id)
    if user is None or user.role != UserRole.COACH:
        raise UnauthorizedError("Only coaches can join groups")

    user.group_label = group
    user.section_label = section
    await db.commit()
    logger.info("Coach %s joined %s/%s", user_id, group, section)
    return user
