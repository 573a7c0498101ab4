"""
CRUD core shared schema types
"""

import base64
import binascii
from typing import Annotated, Any

import pydantic


def _decode_row_version(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error as exc:
            raise ValueError("row version must be a base64-encoded string") from exc
    return value


RowVersion = Annotated[
    bytes,
    pydantic.BeforeValidator(_decode_row_version),
    pydantic.PlainSerializer(lambda v: base64.b64encode(v).decode("ascii"), return_type=str, when_used="json")
]
"""Opaque concurrency token, exchanged as standard base64 string in JSON"""


def empty_to_none(value: Any) -> Any:
    if isinstance(value, str) and value.strip() == "":
        return None
    return value
