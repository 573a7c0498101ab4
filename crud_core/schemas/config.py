"""
Special schemas for the configuration file and its properties
"""

from typing import Dict, List, Literal, Optional, Union

import pydantic


class CallbackTarget(pydantic.BaseModel):
    url: pydantic.constr(min_length=8, max_length=255, pattern=r"^https?://")
    shared_secret: Optional[pydantic.constr(max_length=255)] = None
    """Shared secret directly used in the HTTP Authorization header using the 'Bearer' scheme"""


class ServerConfig(pydantic.BaseModel):
    host: str = "127.0.0.1"
    port: pydantic.conint(gt=0, lt=65536) = 8000
    environment: Literal["development", "testing", "staging", "production"] = "production"
    public_base_url: Optional[str] = None
    allow_weak_insecure_password_hashes: bool = False
    cors_origins: List[str] = []
    callbacks: List[CallbackTarget] = []


class DatabaseConfig(pydantic.BaseModel):
    connection: str = "sqlite://"
    debug_sql: bool = False


class AuthConfig(pydantic.BaseModel):
    secret_key: Optional[pydantic.constr(min_length=32)] = None
    """Key to sign the access tokens (a random key per process is used if unset)"""
    issuer: str = "crud_core"
    audience: str = "crud_core"
    access_token_minutes: pydantic.PositiveInt = 15
    refresh_token_days: pydantic.PositiveInt = 7
    reset_token_minutes: pydantic.PositiveInt = 60
    reset_password_url: str = "http://localhost:4200/reset-password"
    mail_sender: str = "noreply@localhost"
    secure_cookies: bool = True


class CacheConfig(pydantic.BaseModel):
    enabled: bool = True
    redis_url: Optional[str] = None
    key_prefix: str = "crud_core"
    absolute_expiration: pydantic.PositiveInt = 300
    sliding_expiration: Optional[pydantic.PositiveInt] = None
    cache_control: str = "public, max-age=60"


class RateLimitRule(pydantic.BaseModel):
    max_requests: pydantic.PositiveInt
    window_minutes: pydantic.PositiveInt


class RateLimitConfig(pydantic.BaseModel):
    enabled: bool = True
    rules: Dict[str, RateLimitRule] = {
        "/v1/auth/login": RateLimitRule(max_requests=5, window_minutes=15),
        "/v1/auth/token": RateLimitRule(max_requests=5, window_minutes=15),
        "/v1/auth/register": RateLimitRule(max_requests=3, window_minutes=60),
        "/v1/auth/refresh": RateLimitRule(max_requests=10, window_minutes=15),
        "/v1/database/reset": RateLimitRule(max_requests=10, window_minutes=1)
    }


class LoggingConfig(pydantic.BaseModel):
    version: pydantic.conint(ge=1, le=1) = 1
    disable_existing_loggers: bool = False
    incremental: bool = False
    filters: Dict[str, Dict[str, Union[str, list]]] = {
        "multipart_no_debug": {
            "()": "crud_core.misc.logger.NoDebugFilter",
            "name": "multipart.multipart"
        }
    }
    formatters: Dict[str, Dict[str, str]] = {
        "default": {
            "style": "{",
            "format": "{asctime}: crud_core {process}: [{levelname}] {name}: {message}",
            "datefmt": "%d.%m.%Y %H:%M:%S"
        },
        "file": {
            "style": "{",
            "format": "{asctime} ({process}): [{levelname}] {name}: {message}",
            "datefmt": "%d.%m.%Y %H:%M"
        },
        "access": {
            "()": "uvicorn.logging.AccessFormatter",
            "fmt": "%(asctime)s %(client_addr)s - \"%(request_line)s\" %(status_code)s"
        }
    }
    loggers: Dict[str, dict] = {
        "uvicorn.access": {
            "handlers": ["access"],
            "propagate": False
        }
    }
    handlers: Dict[str, Dict[str, Union[str, list]]] = {
        "default": {
            "level": "INFO",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "default",
            "filters": ["multipart_no_debug"]
        },
        "file": {
            "level": "DEBUG",
            "class": "logging.FileHandler",
            "filename": "./crud_core.log",
            "formatter": "file",
            "filters": ["multipart_no_debug"]
        },
        "access": {
            "level": "INFO",
            "class": "logging.FileHandler",
            "filename": "./access.log",
            "formatter": "access"
        }
    }
    root: dict = {
        "level": "INFO",
        "handlers": ["default", "file"]
    }


class CoreConfig(pydantic.BaseModel):
    server: ServerConfig = pydantic.Field(default_factory=ServerConfig)
    database: DatabaseConfig = pydantic.Field(default_factory=DatabaseConfig)
    auth: AuthConfig = pydantic.Field(default_factory=AuthConfig)
    cache: CacheConfig = pydantic.Field(default_factory=CacheConfig)
    rate_limits: RateLimitConfig = pydantic.Field(default_factory=RateLimitConfig)
    logging: LoggingConfig = pydantic.Field(default_factory=LoggingConfig)

    @pydantic.field_validator("rate_limits")
    @classmethod
    def lowercase_rate_limit_paths(cls, value: RateLimitConfig) -> RateLimitConfig:
        value.rules = {k.lower(): v for k, v in value.rules.items()}
        return value
