"""
ETag helper library for the core REST API
"""

import json
import base64
import hashlib
import logging
import datetime
import email.utils
import collections.abc
from typing import Any, Dict, Optional

import pydantic
from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder

from . import base


logger = logging.getLogger(__name__)


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


class ETag:
    """
    Helper class providing methods to create and compare ETags and related headers

    Responses of GET requests carry the `ETag`, `Last-Modified` and `Cache-Control`
    headers. Clients may send `If-None-Match` (preferred) or `If-Modified-Since`
    to receive `304 Not Modified` instead of the full payload. Modifying requests
    may carry `If-Match` (or `If-Unmodified-Since`) to detect mid-air collisions,
    which are answered with `412 Precondition Failed`.
    """

    request: Request
    model_name: Optional[str]
    cache_control: Optional[str]

    def __init__(self, request: Request, cache_control: Optional[str] = None):
        self.request = request
        self.model_name = None
        self.cache_control = cache_control

        if request.headers.get("If-Range"):
            logger.debug(f"'If-Range' header not supported: {request.headers.get('If-Range')!r}")

    def respond(self, response: Response, model: base.ModelType) -> base.ModelType:
        """
        Add the caching headers of the model to the response or raise ``NotModified``

        :param response: Response object of the handled request
        :param model: generated model of the completely finished request
        :return: the unchanged model
        :raises NotModified: if the user agent already has the most recent version of a resource
        """

        tag = self.make_etag(model, self.model_name)
        headers = self.make_headers(tag, self.last_modified(model))
        if self.request.method in ("GET", "HEAD") and self.is_not_modified(tag, self.last_modified(model)):
            raise base.NotModified(self.request.url.path, headers)
        response.headers.update(headers)
        return model

    def make_headers(self, tag: Optional[str], last_modified: Optional[datetime.datetime]) -> Dict[str, str]:
        headers = {}
        if tag is not None:
            headers["ETag"] = f'"{tag}"'
        if last_modified is not None:
            headers["Last-Modified"] = email.utils.format_datetime(_as_utc(last_modified), usegmt=True)
        if self.cache_control:
            headers["Cache-Control"] = self.cache_control
        return headers

    def is_not_modified(self, tag: Optional[str], last_modified: Optional[datetime.datetime]) -> bool:
        """
        Evaluate `If-None-Match` and `If-Modified-Since` (the latter only without the former)
        """

        none_match = self.request.headers.get("If-None-Match")
        if none_match is not None:
            return tag is not None and self._matches(none_match, tag, weak=True)

        since = self._parse_date(self.request.headers.get("If-Modified-Since"))
        if since is None or last_modified is None:
            return False
        return _as_utc(last_modified).replace(microsecond=0) <= since

    def compare(self, current_model: Optional[base.ModelType] = None) -> bool:
        """
        Calculate and compare the ETag of the given model with the known client ETag

        This method raises appropriate exceptions to interrupt further object
        processing. Modifying requests without `If-Match` and `If-Unmodified-Since`
        header fields are always accepted, since those preconditions are optional.

        :param current_model: any subclass of a base model or list thereof
        :return: ``True`` if everything went smoothly
        :raises PreconditionFailed: if any of the preconditions were not met
        """

        model_tag = self.make_etag(current_model, self.model_name)
        precondition_failed = base.PreconditionFailed(
            self.request.url.path,
            f"Conditional request not matching current model entity tag: {model_tag}"
        )

        match = self.request.headers.get("If-Match")
        if match is not None and match.strip() != "":
            if model_tag is None or not self._matches(match, model_tag, weak=False):
                raise precondition_failed
            return True

        since = self._parse_date(self.request.headers.get("If-Unmodified-Since"))
        last_modified = self.last_modified(current_model)
        if since is not None and last_modified is not None:
            if _as_utc(last_modified).replace(microsecond=0) > since:
                raise precondition_failed
        return True

    @staticmethod
    def _matches(header: str, tag: str, weak: bool) -> bool:
        if header.strip() == "*":
            return True
        for candidate in map(str.strip, header.split(",")):
            if candidate.startswith("W/"):
                if not weak:
                    continue
                candidate = candidate[2:]
            if candidate.startswith('"'):
                candidate = candidate[1:]
            if candidate.endswith('"'):
                candidate = candidate[:-1]
            if candidate != "" and candidate == tag:
                return True
        return False

    @staticmethod
    def _parse_date(value: Optional[str]) -> Optional[datetime.datetime]:
        if not value:
            return None
        try:
            return _as_utc(email.utils.parsedate_to_datetime(value))
        except (TypeError, ValueError):
            logger.debug(f"Ignoring invalid HTTP date {value!r}")
            return None

    @staticmethod
    def last_modified(obj: Any) -> Optional[datetime.datetime]:
        """
        Determine the most recent modification time of a model or a sequence of models
        """

        if obj is None:
            return None
        if isinstance(obj, collections.abc.Sequence):
            stamps = [ETag.last_modified(e) for e in obj]
            stamps = [s for s in stamps if s is not None]
            return max(stamps) if stamps else None
        return getattr(obj, "updated_at", None) or getattr(obj, "created_at", None)

    @staticmethod
    def make_etag(obj: Any, name: Optional[str] = None) -> Optional[str]:
        """
        Create a static and unambiguous ETag value based on a given object

        The tag is derived from the JSON representation of the object, which
        includes the row version of versioned models, so that every update
        yields a new tag. The method might return None in case the generation
        of the ETag failed.

        :param obj: any object that can be JSON-serialized
        :param name: optional string describing the object type (e.g. class name)
        :return: optional ETag value as a string
        """

        if obj is None:
            return

        if isinstance(obj, pydantic.BaseModel):
            representation = obj.model_dump(mode="json")
        elif isinstance(obj, collections.abc.Sequence):
            if any(map(lambda x: not isinstance(x, pydantic.BaseModel), obj)):
                logger.warning(f"Not all elements of the sequence of length {len(obj)} are models")
            representation = jsonable_encoder(obj)
        else:
            logger.warning(f"Object {obj!r} ({type(obj)}) is no valid model")
            representation = jsonable_encoder(obj)

        if representation is None:
            logger.error(f"Could not generate ETag token for {obj!r}")
            return

        cls = type(obj).__name__
        dump = json.dumps(representation, allow_nan=False, sort_keys=True)
        content = cls + dump + (name or "")
        digest = hashlib.md5(content.encode("UTF-8")).digest()
        return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
