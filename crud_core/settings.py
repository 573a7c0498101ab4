"""
CRUD core settings provider
"""

import os
import sys
import json
import functools
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

import pydantic_settings
from pydantic.fields import FieldInfo

from .schemas import config


SETTINGS_CREATE_NONEXISTENT: bool = False
"""
switch to create a new configuration file if no existing file has been found
"""

SETTINGS_EXIT_ON_ERROR: bool = False
"""
switch to call ``exit(1)`` for failed config loading (use all defaults otherwise)
"""

SETTINGS_LOG_ERROR_FUNCTION: Optional[Callable[[str], Any]] = functools.partial(print, file=sys.stderr)
"""
optional function to accept log messages on failure
"""

SETTINGS_LOG_INFO_FUNCTION: Optional[Callable[[str], Any]] = None
"""
optional function to accept log messages when creating a new configuration file
"""

CONFIG_PATHS: List[str] = ["config.json", os.path.join("..", "config.json")]
"""
list of search paths for the config file, can be overwritten by the env variable ``CONFIG_PATH``
"""

if os.environ.get("CONFIG_PATH"):
    CONFIG_PATHS = [os.environ.get("CONFIG_PATH")]


def get_db_from_env(db_override: Optional[str] = None) -> Optional[str]:
    if db_override:
        return db_override
    return os.environ.get("DATABASE_CONNECTION", os.environ.get("DATABASE__CONNECTION", None))


class JsonConfigFileSource(pydantic_settings.PydanticBaseSettingsSource):
    """
    Settings source reading the first existing JSON config file of the ``CONFIG_PATHS``
    """

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        return None, field_name, False

    def __call__(self) -> Dict[str, Any]:
        return read_settings_from_file()


class Settings(pydantic_settings.BaseSettings, config.CoreConfig):
    """
    CRUD core settings

    Do not change most of the settings at runtime, since this might lead to unspecified
    behavior. Always restart the server after changing the config file. But note that
    there are some parts (especially the server config and the database config), which
    might get overwritten during initialization (via command-line arguments) or during
    unit testing (where e.g. some server settings will be ignored completely).

    Values are taken from (in order of precedence) constructor arguments, environment
    variables (nested by ``__``, e.g. ``DATABASE__CONNECTION``), the ``.env`` file,
    the JSON config file and finally the defaults of the config schema.
    """

    model_config = pydantic_settings.SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore"
    )

    @classmethod
    def settings_customise_sources(
            cls,
            settings_cls: Type[pydantic_settings.BaseSettings],
            init_settings: pydantic_settings.PydanticBaseSettingsSource,
            env_settings: pydantic_settings.PydanticBaseSettingsSource,
            dotenv_settings: pydantic_settings.PydanticBaseSettingsSource,
            file_secret_settings: pydantic_settings.PydanticBaseSettingsSource
    ) -> Tuple[pydantic_settings.PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, dotenv_settings, JsonConfigFileSource(settings_cls), file_secret_settings


def store_configuration(conf: Optional[config.CoreConfig] = None, path: Optional[str] = None) -> config.CoreConfig:
    p = path or os.path.abspath(CONFIG_PATHS[0])
    conf = conf or get_default_core_config(get_db_from_env())
    with open(p, "w") as f:
        json.dump(conf.model_dump(mode="json"), f, indent=4)
    SETTINGS_LOG_INFO_FUNCTION and SETTINGS_LOG_INFO_FUNCTION(f"A new config file has been created as {p!r}.")
    return conf


def read_settings_from_file() -> Dict[str, Any]:
    for path in CONFIG_PATHS:
        if os.path.exists(path):
            with open(path, "r", encoding="UTF-8") as file:
                return json.load(file)

    if SETTINGS_CREATE_NONEXISTENT:
        return store_configuration().model_dump(mode="json")

    if SETTINGS_LOG_ERROR_FUNCTION and SETTINGS_EXIT_ON_ERROR:
        SETTINGS_LOG_ERROR_FUNCTION(
            "No config file found! Use the 'init' command to create a basic configuration file or "
            "use the 'auto' mode which does all the setup by environment variables automatically."
        )
    if SETTINGS_EXIT_ON_ERROR:
        sys.exit(1)
    return {}


def get_default_core_config(database_override: Optional[str] = None) -> config.CoreConfig:
    c = config.CoreConfig()
    if database_override:
        c.database.connection = database_override
    return c


def get_default_config() -> Dict[str, Any]:
    return get_default_core_config().model_dump(mode="json")
