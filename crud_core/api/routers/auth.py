"""
CRUD core router module for authentication and password resets
"""

import logging
from typing import Optional

import pydantic
from fastapi import Cookie, Depends
from fastapi.security import OAuth2PasswordRequestForm

from ._router import router
from ..base import BadRequest, Unauthorized
from ..dependency import LocalRequestData, MinimalRequestData
from .. import versioning
from ...services import accounts
from ... import schemas


logger = logging.getLogger(__name__)

REFRESH_TOKEN_COOKIE = "refreshToken"


def _set_refresh_cookie(token: schemas.Token, local: MinimalRequestData):
    conf = local.config.auth
    local.response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        token.refresh_token,
        max_age=conf.refresh_token_days * 24 * 60 * 60,
        path="/",
        secure=conf.secure_cookies,
        httponly=True,
        samesite="strict"
    )


@router.post(
    "/auth/register",
    tags=["Authentication"],
    response_model=schemas.Token,
    responses={400: {"model": schemas.APIError}, 429: {"model": schemas.APIError}}
)
@versioning.versions(1)
async def register(data: schemas.UserRegistration, local: MinimalRequestData = Depends(MinimalRequestData)):
    """
    Register a new user account and log in immediately

    * `400`: if the email address is already used by another account
    """

    token = accounts.register(local.session, data)
    _set_refresh_cookie(token, local)
    return token


@router.post(
    "/auth/login",
    tags=["Authentication"],
    response_model=schemas.Token,
    responses={401: {"model": schemas.APIError}, 429: {"model": schemas.APIError}}
)
@versioning.versions(1)
async def login(data: schemas.UserLogin, local: MinimalRequestData = Depends(MinimalRequestData)):
    """
    Login using email and password to retrieve an access token and a refresh token

    The access token should be included in the `Authorization` header
    using the `Bearer` scheme. The refresh token is additionally set
    as HTTP-only cookie to be used by `POST /auth/refresh`.

    * `401`: if the credentials are invalid or the account is locked
    """

    token = accounts.login(local.session, data)
    _set_refresh_cookie(token, local)
    return token


@router.post(
    "/auth/token",
    tags=["Authentication"],
    response_model=schemas.Token,
    responses={401: {"model": schemas.APIError}, 429: {"model": schemas.APIError}}
)
@versioning.versions(1)
async def login_with_form(
        data: OAuth2PasswordRequestForm = Depends(),
        local: MinimalRequestData = Depends(MinimalRequestData)
):
    """
    Login via the OAuth Password Flow, e.g. from the interactive API docs

    This endpoint behaves like `POST /auth/login`, but takes URL-encoded
    form data as enforced by the OAuth standard (RFC 6749, section 4.3).
    The email address of the account is sent as `username`.

    * `401`: if the credentials are invalid or the account is locked
    """

    try:
        credentials = schemas.UserLogin(email=data.username, password=data.password)
    except pydantic.ValidationError as exc:
        raise Unauthorized("Invalid email or password") from exc
    token = accounts.login(local.session, credentials)
    _set_refresh_cookie(token, local)
    return token


@router.post(
    "/auth/refresh",
    tags=["Authentication"],
    response_model=schemas.Token,
    responses={k: {"model": schemas.APIError} for k in (400, 401, 429)}
)
@versioning.versions(1)
async def refresh(
        data: Optional[schemas.RefreshRequest] = None,
        refresh_cookie: Optional[str] = Cookie(default=None, alias=REFRESH_TOKEN_COOKIE),
        local: MinimalRequestData = Depends(MinimalRequestData)
):
    """
    Exchange a refresh token for a new pair of tokens (the used refresh token is revoked)

    The refresh token is taken from the request body or the `refreshToken` cookie.

    * `400`: if no refresh token was given
    * `401`: if the refresh token is unknown, revoked or expired
    """

    token = accounts.refresh(local.session, (data and data.refresh_token) or refresh_cookie)
    _set_refresh_cookie(token, local)
    return token


@router.post(
    "/auth/revoke",
    tags=["Authentication"],
    response_model=schemas.Message,
    responses={400: {"model": schemas.APIError}}
)
@versioning.versions(1)
async def revoke(
        data: Optional[schemas.RefreshRequest] = None,
        refresh_cookie: Optional[str] = Cookie(default=None, alias=REFRESH_TOKEN_COOKIE),
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Revoke a single refresh token of the current user

    * `400`: if the refresh token is unknown or not active anymore
    """

    refresh_token = (data and data.refresh_token) or refresh_cookie
    if not refresh_token:
        raise BadRequest("Refresh token is required")
    owned = any(t.token == refresh_token for t in local.user.refresh_tokens)
    if not owned or not accounts.revoke(local.session, refresh_token):
        raise BadRequest("Invalid refresh token")
    if refresh_cookie == refresh_token:
        local.response.delete_cookie(REFRESH_TOKEN_COOKIE, path="/")
    return schemas.Message(message="Token revoked successfully")


@router.post("/auth/logout", tags=["Authentication"], response_model=schemas.Message)
@versioning.versions(1)
async def logout(local: LocalRequestData = Depends(LocalRequestData)):
    """
    Revoke all active refresh tokens of the current user and clear the refresh token cookie
    """

    accounts.logout(local.session, local.user)
    local.response.delete_cookie(REFRESH_TOKEN_COOKIE, path="/")
    return schemas.Message(message="Logged out successfully")


@router.get("/auth/me", tags=["Authentication"], response_model=schemas.UserInfo)
@versioning.versions(1)
async def get_current_user(local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return the account information of the currently authenticated user
    """

    return local.user.schema


@router.post("/auth/forgot-password", tags=["Authentication"], response_model=schemas.Message)
@versioning.versions(1)
async def forgot_password(
        data: schemas.ForgotPasswordRequest,
        local: MinimalRequestData = Depends(MinimalRequestData)
):
    """
    Request a password reset link for the account of the given email address

    The response is always the same, regardless of whether an account
    with that address exists or not.
    """

    return accounts.forgot_password(local.session, data.email)


@router.get("/auth/validate-reset-token", tags=["Authentication"], response_model=schemas.ResetTokenValidation)
@versioning.versions(1)
async def validate_reset_token(
        token: pydantic.constr(max_length=512) = "",
        local: MinimalRequestData = Depends(MinimalRequestData)
):
    """
    Check whether a password reset token is still valid

    Unknown tokens are reported as invalid, but neither as expired nor as used.
    """

    return accounts.validate_reset_token(local.session, token)


@router.post(
    "/auth/reset-password",
    tags=["Authentication"],
    response_model=schemas.Message,
    responses={400: {"model": schemas.APIError}}
)
@versioning.versions(1)
async def reset_password(
        data: schemas.ResetPasswordRequest,
        local: MinimalRequestData = Depends(MinimalRequestData)
):
    """
    Set a new password using a password reset token, signing out all sessions

    * `400`: if the token is unknown, expired or has already been used
    """

    return accounts.reset_password(local.session, data)
