"""
Commands and queries for user accounts, their sessions and password resets

Every successful authentication yields a pair of tokens: a short-lived
JWT access token and an opaque refresh token that's stored in the
database. Refresh tokens are rotated, i.e. using one revokes it and
issues a new pair. Password resets use single-use random tokens which
are delivered to the user by the email service.
"""

import uuid
import secrets
import logging
import datetime
from typing import Optional

from sqlalchemy.orm import Session

from .. import schemas
from ..api import auth
from ..api.base import BadRequest, NotFound, Unauthorized
from ..misc import emails
from ..misc.logger import sanitize
from ..misc.notifier import Callback
from ..persistence import models, versioning


logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."


def find_user(session: Session, email: str) -> Optional[models.User]:
    return session.query(models.User).filter_by(email=email.strip().lower()).first()


def load(session: Session, user_id: uuid.UUID) -> models.User:
    user = session.get(models.User, user_id)
    if user is None:
        raise NotFound(f"User with ID {user_id}")
    return user


def _find_refresh_token(session: Session, token: Optional[str]) -> Optional[models.RefreshToken]:
    if not token:
        return None
    return session.query(models.RefreshToken).filter_by(token=token).first()


def _issue_tokens(session: Session, user: models.User) -> schemas.Token:
    """
    Create a new access token and a new refresh token for the user and commit the session
    """

    refresh_token = models.RefreshToken(
        id=uuid.uuid4(),
        token=secrets.token_urlsafe(64),
        expires_at=models.utcnow() + datetime.timedelta(days=auth.get_auth_config().refresh_token_days)
    )
    user.refresh_tokens.append(refresh_token)
    session.commit()
    return schemas.Token(
        access_token=auth.create_access_token(user),
        refresh_token=refresh_token.token,
        token_type="bearer",
        expires_in=auth.access_token_lifetime()
    )


def create_user(
        session: Session,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        roles=None
) -> models.User:
    """
    Create and commit a new user account

    :raises BadRequest: when the email address is already used by another account
    """

    if find_user(session, email) is not None:
        logger.warning(f"Registration attempt with existing email {sanitize(email)!r}")
        raise BadRequest("Email already exists", f"email={sanitize(email)!r}")
    user = models.User(
        id=uuid.uuid4(),
        email=email.strip().lower(),
        password_hash=auth.hash_password(password),
        first_name=first_name,
        last_name=last_name,
        roles=list(roles or [auth.USER_ROLE]),
        locked=False,
        row_version=versioning.generate_initial_version()
    )
    session.add(user)
    session.commit()
    return user


def register(session: Session, data: schemas.UserRegistration) -> schemas.Token:
    user = create_user(session, data.email, data.password, data.first_name, data.last_name)
    token = _issue_tokens(session, user)
    logger.info(f"User registered successfully: {user.id}")
    Callback.push(schemas.EventType.USER_REGISTERED, {"id": str(user.id)})
    return token


def login(session: Session, data: schemas.UserLogin) -> schemas.Token:
    """
    Authenticate a user with email and password

    :raises Unauthorized: for unknown users, locked accounts and wrong passwords
    """

    user = find_user(session, data.email)
    if user is None:
        logger.warning(f"Login attempt with non-existent email {sanitize(data.email)!r}")
        raise Unauthorized("Invalid email or password")
    if user.locked:
        logger.warning(f"Login attempt on locked account {user.id}")
        raise Unauthorized("Account is locked")
    if not auth.verify_password(user, data.password):
        logger.warning(f"Login attempt with invalid password for user {user.id}")
        raise Unauthorized("Invalid email or password")

    removed = user.cleanup_expired_tokens()
    if removed:
        logger.debug(f"Removed {removed} expired refresh tokens of {user!r}")
    token = _issue_tokens(session, user)
    logger.info(f"User logged in successfully: {user.id}")
    Callback.push(schemas.EventType.USER_LOGGED_IN, {"id": str(user.id)})
    return token


def refresh(session: Session, refresh_token: Optional[str]) -> schemas.Token:
    """
    Exchange a refresh token for a new pair of tokens, revoking the used refresh token

    :raises BadRequest: when no refresh token was given at all
    :raises Unauthorized: for unknown, revoked or expired tokens and locked accounts
    """

    if not refresh_token:
        raise BadRequest("Refresh token is required")
    token = _find_refresh_token(session, refresh_token)
    if token is None:
        logger.warning("Refresh token attempt with invalid token")
        raise Unauthorized("Invalid refresh token")
    user = token.user
    if user.locked:
        logger.warning(f"Refresh token attempt on locked account {user.id}")
        raise Unauthorized("Account is locked")
    if token.revoked:
        logger.warning(f"Attempt to use revoked refresh token for user {user.id}")
        raise Unauthorized("Refresh token has been revoked")
    if token.expired:
        logger.warning(f"Attempt to use expired refresh token for user {user.id}")
        raise Unauthorized("Refresh token has expired")

    token.revoke()
    user.cleanup_expired_tokens()
    result = _issue_tokens(session, user)
    logger.info(f"Refresh token rotated successfully for user {user.id}")
    Callback.push(schemas.EventType.TOKEN_REFRESHED, {"id": str(user.id)})
    return result


def revoke(session: Session, refresh_token: Optional[str]) -> bool:
    """
    Revoke a single refresh token, returning whether an active token was revoked
    """

    token = _find_refresh_token(session, refresh_token)
    if token is None:
        logger.warning("Revoke token attempt with invalid token")
        return False
    if not token.active:
        return False
    token.revoke()
    session.commit()
    logger.info(f"Refresh token revoked for user {token.user_id}")
    return True


def logout(session: Session, user: models.User) -> int:
    """
    Revoke all active refresh tokens of the user and return their number
    """

    tokens = user.active_refresh_tokens
    for token in tokens:
        token.revoke()
    session.commit()
    logger.info(f"User logged out successfully: {user.id}")
    Callback.push(schemas.EventType.USER_LOGGED_OUT, {"id": str(user.id)})
    return len(tokens)


def forgot_password(session: Session, email: str) -> schemas.Message:
    """
    Send a password reset link to the user, if an account with the email address exists

    The answer is always the same, so that no information about the
    existence of accounts is leaked. Previously issued, unused reset
    tokens of the user are invalidated by issuing a new one.
    """

    user = find_user(session, email)
    if user is None:
        logger.info(f"Password reset requested for unknown email {sanitize(email)!r}")
        return schemas.Message(message=FORGOT_PASSWORD_MESSAGE)
    if user.locked:
        logger.info(f"Password reset requested for locked account {user.id}")
        return schemas.Message(message=FORGOT_PASSWORD_MESSAGE)

    for previous in user.reset_tokens:
        previous.expire()
    lifetime = datetime.timedelta(minutes=auth.get_auth_config().reset_token_minutes)
    reset_token = models.PasswordResetToken.issue(user, lifetime)
    session.add(reset_token)
    session.commit()

    emails.get_email_service().send_password_reset(user.email, reset_token.token, user.first_name)
    logger.info(f"Password reset token issued for user {user.id}")
    Callback.push(schemas.EventType.PASSWORD_RESET_REQUESTED, {"id": str(user.id)})
    return schemas.Message(message=FORGOT_PASSWORD_MESSAGE)


def _find_reset_token(session: Session, token: Optional[str]) -> Optional[models.PasswordResetToken]:
    if not token:
        return None
    candidate = session.query(models.PasswordResetToken).filter_by(token=token.strip()).first()
    if candidate is None or not secrets.compare_digest(candidate.token, token.strip()):
        return None
    return candidate


def validate_reset_token(session: Session, token: Optional[str]) -> schemas.ResetTokenValidation:
    reset_token = _find_reset_token(session, token)
    if reset_token is None:
        return schemas.ResetTokenValidation(is_valid=False, is_expired=False, is_used=False, expires_at=None)
    return reset_token.schema


def reset_password(session: Session, data: schemas.ResetPasswordRequest) -> schemas.Message:
    """
    Set a new password using a valid reset token, signing out all sessions of the user

    :raises BadRequest: when the token is unknown, expired or has already been used
    :raises ConcurrencyConflict: when the token was used concurrently by another request
    """

    reset_token = _find_reset_token(session, data.token)
    if reset_token is None or not reset_token.validate(data.token):
        logger.warning("Password reset attempt with invalid, expired or used token")
        raise BadRequest("Invalid or expired reset token")

    user = reset_token.user
    reset_token.mark_as_used()
    user.password_hash = auth.hash_password(data.new_password)
    user.updated_at = models.utcnow()
    for token in user.active_refresh_tokens:
        token.revoke()
    versioning.stamp(user)
    versioning.commit(session, reset_token)

    emails.get_email_service().send_password_changed(user.email, user.first_name)
    logger.info(f"Password reset completed for user {user.id}")
    Callback.push(schemas.EventType.PASSWORD_RESET_COMPLETED, {"id": str(user.id)})
    return schemas.Message(message="Password has been reset successfully.")


def set_roles(session: Session, user: models.User, roles) -> models.User:
    user.roles = sorted(set(roles))
    user.updated_at = models.utcnow()
    versioning.stamp(user)
    versioning.commit(session, user)
    return user


def set_locked(session: Session, user: models.User, locked: bool) -> models.User:
    user.locked = locked
    if locked:
        for token in user.active_refresh_tokens:
            token.revoke()
    user.updated_at = models.utcnow()
    versioning.stamp(user)
    versioning.commit(session, user)
    return user
