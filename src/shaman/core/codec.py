"""JSON and query-option encoding shared by the API server and client."""

import json
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import BaseModel, TypeAdapter, ValidationError

from shaman.api.models import ApiError, FullOption, Resource
from shaman.utils.exceptions import BadJSONError, InvalidResourceError

_RESOURCE_LIST = TypeAdapter(List[Resource])

# Option name -> encoder; an encoder returns None when the option is at its
# default and must be left out of the query string.
QUERY_ENCODERS: Dict[str, Callable[[FullOption], Optional[str]]] = {
    "full": lambda options: "true" if options.full else None,
}


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_none=True)

    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]

    if isinstance(value, dict):
        return {key: _to_jsonable(item) for key, item in value.items()}

    return value


def encode_json(value: Any) -> bytes:
    """Encode models, lists of models or plain data as UTF-8 JSON."""
    return json.dumps(_to_jsonable(value)).encode("utf-8")


def decode_json(data: bytes) -> Any:
    """Decode UTF-8 JSON bytes, raising BadJSONError on malformed input."""
    try:
        return json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise BadJSONError() from e


def _format_validation_error(error: ValidationError) -> str:
    parts = []

    for item in error.errors():
        location = ".".join(str(loc) for loc in item["loc"])
        message = item["msg"]
        parts.append(f"{location}: {message}" if location else message)

    return "; ".join(parts)


def to_resource(payload: Any) -> Resource:
    """Validate an already decoded payload as a Resource."""
    try:
        return Resource.model_validate(payload)
    except ValidationError as e:
        raise InvalidResourceError(_format_validation_error(e)) from e


def to_resources(payload: Any) -> List[Resource]:
    """Validate an already decoded payload as a list of Resources."""
    try:
        return _RESOURCE_LIST.validate_python(payload)
    except ValidationError as e:
        raise InvalidResourceError(_format_validation_error(e)) from e


def decode_resource(data: bytes) -> Resource:
    return to_resource(decode_json(data))


def decode_resources(data: bytes) -> List[Resource]:
    return to_resources(decode_json(data))


def decode_api_error(data: bytes) -> ApiError:
    """Decode an error body; anything that is not an ApiError is bad JSON."""
    try:
        return ApiError.model_validate(decode_json(data))
    except ValidationError as e:
        raise BadJSONError() from e


def add_query_options(path: str, options: Optional[FullOption]) -> str:
    """
    Append the non-default options to path as URL query parameters.

    Returns path unchanged when no options are given.
    """
    if options is None:
        return path

    params = {}

    for name, encode in QUERY_ENCODERS.items():
        encoded = encode(options)

        if encoded is not None:
            params[name] = encoded

    if not params:
        return path

    parts = urlsplit(path)
    query = dict(parse_qsl(parts.query))
    query.update(params)

    return urlunsplit(parts._replace(query=urlencode(query)))
