"""
Authentication helper library for the core REST API
"""

import uuid
import datetime
import logging
from typing import Any, Dict, Optional

from jose import jwt
from argon2 import PasswordHasher, profiles
from argon2.exceptions import InvalidHashError, VerificationError

from . import base
from ..persistence import models, versioning
from ..schemas import config


ADMIN_ROLE = "Admin"
USER_ROLE = "User"

logger = logging.getLogger(__name__)

_password_check: Optional[PasswordHasher] = None
_auth_config: Optional[config.AuthConfig] = None


def init(settings: config.CoreConfig):
    """
    Configure the password hasher and the token parameters from the given settings
    """

    global _password_check, _auth_config
    _auth_config = settings.auth
    if settings.server.allow_weak_insecure_password_hashes:
        _password_check = PasswordHasher.from_parameters(profiles.CHEAPEST)
    else:
        _password_check = PasswordHasher.from_parameters(profiles.RFC_9106_LOW_MEMORY)


def get_auth_config() -> config.AuthConfig:
    global _auth_config
    if _auth_config is None:
        _auth_config = config.AuthConfig()
    return _auth_config


def _get_password_check() -> PasswordHasher:
    global _password_check
    if _password_check is None:
        _password_check = PasswordHasher.from_parameters(profiles.RFC_9106_LOW_MEMORY)
    return _password_check


def _get_secret_key() -> str:
    return get_auth_config().secret_key or base.runtime_key


def hash_password(password: str) -> str:
    return _get_password_check().hash(password)


def verify_password(user: models.User, password: str) -> bool:
    """
    Check the password of the user, upgrading the stored hash if its parameters are outdated

    The caller is responsible to commit the session if the hash was upgraded.
    """

    checker = _get_password_check()
    try:
        checker.verify(user.password_hash, password)
    except (VerificationError, InvalidHashError):
        return False
    if checker.check_needs_rehash(user.password_hash):
        logger.debug(f"Upgrading password hash of {user!r}")
        user.password_hash = checker.hash(password)
        versioning.stamp(user)
    return True


def create_access_token(user: models.User, expiration_minutes: Optional[int] = None) -> str:
    conf = get_auth_config()
    now = datetime.datetime.now(datetime.timezone.utc)
    minutes = expiration_minutes or conf.access_token_minutes
    return jwt.encode(
        {
            "exp": now + datetime.timedelta(minutes=minutes),
            "iat": now,
            "sub": str(user.id),
            "email": user.email,
            "roles": list(user.roles or []),
            "jti": uuid.uuid4().hex,
            "iss": conf.issuer,
            "aud": conf.audience
        },
        _get_secret_key(),
        algorithm=jwt.ALGORITHMS.HS256
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate an access token, raising ``Unauthorized`` for any kind of invalid token
    """

    conf = get_auth_config()
    try:
        payload = jwt.decode(
            token,
            _get_secret_key(),
            algorithms=[jwt.ALGORITHMS.HS256],
            audience=conf.audience,
            issuer=conf.issuer,
            options={"require_exp": True, "require_iat": True, "require_sub": True}
        )
        uuid.UUID(payload["sub"])
    except (jwt.JWTError, KeyError, ValueError) as exc:
        raise base.Unauthorized("Failed to validate token successfully", f"{type(exc).__name__}: {exc}") from exc
    return payload


def access_token_lifetime() -> int:
    """
    Return the lifetime of newly created access tokens in seconds
    """

    return get_auth_config().access_token_minutes * 60


def is_admin(roles) -> bool:
    return ADMIN_ROLE in (roles or [])
