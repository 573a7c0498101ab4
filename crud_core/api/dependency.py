"""
CRUD core API dependency library
"""

import uuid
import logging
from typing import Any, Dict, Generator, List, Optional

import sqlalchemy.exc
from fastapi import Depends, Request, Response
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from . import auth, base
from .etag import ETag
from ..persistence import database, models
from ..settings import Settings


def get_session() -> Generator[Session, None, bool]:
    """
    Return a generator to handle database sessions gracefully
    """

    logger = logging.getLogger(__name__)
    session = database.get_new_session()

    try:
        yield session
        session.flush()
    except sqlalchemy.exc.DBAPIError as exc:
        details = (exc.statement or "").replace("\n", "")
        logger.exception(f"{type(exc).__name__}: {exc.orig} @ {details!r}")
        session.rollback()
        raise
    except sqlalchemy.exc.SQLAlchemyError as exc:
        logger.exception(f"{type(exc).__name__}: {str(exc)}")
        session.rollback()
        raise
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
    return True


def get_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        settings = Settings()
        request.app.state.settings = settings
    return settings


class MinimalRequestData:
    """
    Collection of minimal dependencies used by path operations without authentication
    """

    def __init__(
            self,
            request: Request,
            response: Response,
            session: Session = Depends(get_session)
    ):
        self.request = request
        self.response = response
        self.headers = request.headers
        self.session = session
        self._config: Optional[Settings] = None
        self._etag: Optional[ETag] = None

    @property
    def config(self) -> Settings:
        if self._config is None:
            self._config = get_settings(self.request)
        return self._config

    @property
    def etag(self) -> ETag:
        if self._etag is None:
            self._etag = ETag(self.request, self.config.cache.cache_control)
        return self._etag


async def check_auth_token(
        token: str = Depends(OAuth2PasswordBearer(tokenUrl="auth/token"))
) -> Dict[str, Any]:
    return auth.decode_access_token(token)


class LocalRequestData(MinimalRequestData):
    """
    Collection of core dependencies used by all path operations of authenticated users

    This class stores references to various important objects that
    will almost certainly be used by request handlers (path operations).
    Note that any dependency added here will be added to the OpenAPI
    definition, if it refers to a Query, Header, Path or Cookie.
    """

    def __init__(
            self,
            request: Request,
            response: Response,
            session: Session = Depends(get_session),
            claims: Dict[str, Any] = Depends(check_auth_token)
    ):
        super().__init__(request, response, session)
        self.claims = claims

        user = session.get(models.User, uuid.UUID(claims["sub"]))
        if user is None:
            raise base.Unauthorized("Failed to validate token successfully", f"unknown user {claims['sub']}")
        if user.locked:
            raise base.Unauthorized("Account is locked", f"user {user.id}")
        self.user: models.User = user

    @property
    def roles(self) -> List[str]:
        return list(self.claims.get("roles") or [])


class AdminRequestData(LocalRequestData):
    """
    Collection of core dependencies for path operations restricted to administrators
    """

    def __init__(
            self,
            request: Request,
            response: Response,
            session: Session = Depends(get_session),
            claims: Dict[str, Any] = Depends(check_auth_token)
    ):
        super().__init__(request, response, session, claims)
        if not auth.is_admin(self.roles):
            raise base.Forbidden(detail=f"user {self.user.id} lacks the {auth.ADMIN_ROLE!r} role")
