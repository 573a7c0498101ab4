"""
Key generation for the entity cache

Keys follow the schemes ``entity:<name>:<id>`` for single entities,
``list:<name>`` for whole collections and ``name:<name>:<normalized>``
for lookups by name. All keys share the configurable global prefix.
"""

import re
import uuid
from typing import Type, Union


_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")

prefix: str = "crud_core"


def entity_name(entity: Union[str, Type]) -> str:
    """
    Return the lower-cased entity name of a model class (or an already given name)
    """

    name = entity if isinstance(entity, str) else entity.__name__
    name = name.lower()
    if name.endswith("entity") and name != "entity":
        name = name[:-len("entity")]
    return name


def normalize(value: str) -> str:
    normalized = _NON_ALPHANUMERIC.sub("_", value.strip().lower())
    return normalized or "empty"


def _join(*parts: str) -> str:
    if prefix:
        return ":".join((prefix, *parts))
    return ":".join(parts)


def entity(entity_type: Union[str, Type], entity_id: Union[uuid.UUID, str]) -> str:
    if isinstance(entity_id, uuid.UUID):
        entity_id = entity_id.hex
    return _join("entity", entity_name(entity_type), str(entity_id).lower())


def collection(entity_type: Union[str, Type]) -> str:
    return _join("list", entity_name(entity_type))


def by_name(entity_type: Union[str, Type], name: str) -> str:
    return _join("name", entity_name(entity_type), normalize(name))


def entity_pattern(entity_type: Union[str, Type]) -> str:
    return _join("entity", entity_name(entity_type), "*")


def name_pattern(entity_type: Union[str, Type]) -> str:
    return _join("name", entity_name(entity_type), "*")
