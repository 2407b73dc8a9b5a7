"""Incoming HTTP requests and helpers reading their body, path and query."""

from __future__ import annotations

import dataclasses
import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type, TypeVar
from urllib.parse import parse_qs

from fabriclog.errors import InvalidArgumentError

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1
_ZERO = {str: "", int: 0, float: 0.0, bool: False}
_TYPE_NAMES = {"str": str, "int": int, "float": float, "bool": bool}

M = TypeVar("M")


@dataclass
class Request:
    """An HTTP request as seen by handlers; header names are case-insensitive."""

    method: str = "GET"
    path: str = "/"
    query_string: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    path_params: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.headers = {name.lower(): value for name, value in self.headers.items()}

    def header(self, name: str, default: str = "") -> str:
        """Return the value of a header, or default when it is absent."""
        return self.headers.get(name.lower(), default)

    def set_header(self, name: str, value: str) -> None:
        """Set a header, replacing any earlier value."""
        self.headers[name.lower()] = value

    @property
    def url(self) -> str:
        """The path with its query string."""
        return f"{self.path}?{self.query_string}" if self.query_string else self.path

    @property
    def query(self) -> Dict[str, List[str]]:
        """The parsed query parameters."""
        return parse_qs(self.query_string, keep_blank_values=True)


def _atoi(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer {text!r}")
    value = int(text)
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f"integer {text!r} out of range")
    return value


def _field_type(f: dataclasses.Field) -> Any:
    if isinstance(f.type, str):
        return _TYPE_NAMES.get(f.type.strip())
    return f.type


def _type_matches(value: Any, expected: Any) -> bool:
    if expected is bool:
        return isinstance(value, bool)
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if expected is float:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected is str:
        return isinstance(value, str)
    return True


def _has_default(f: dataclasses.Field) -> bool:
    return (
        f.default is not dataclasses.MISSING
        or f.default_factory is not dataclasses.MISSING  # type: ignore[misc]
    )


def decode_and_validate(request: Request, model: Type[M]) -> M:
    """Decode the JSON body into the dataclass model and validate it.

    Unknown keys are ignored and keys match field names case-insensitively.
    The instance's validate() method is called when it has one; otherwise
    fields whose metadata holds {"required": True} must not be empty.
    """
    if not dataclasses.is_dataclass(model):
        raise TypeError(f"{model!r} is not a dataclass")

    try:
        text = request.body.decode("utf-8")
        data, _ = json.JSONDecoder().raw_decode(text.lstrip())
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidArgumentError(f"decode json: {exc}: invalid argument") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidArgumentError(
            f"decode json: cannot decode {type(data).__name__} into object: invalid argument"
        )
    lowered = {key.lower(): value for key, value in reversed(list(data.items()))}

    kwargs: Dict[str, Any] = {}
    for f in dataclasses.fields(model):
        if not f.init:
            continue
        name = f.metadata.get("json", f.name)
        value = data[name] if name in data else lowered.get(name.lower())
        expected = _field_type(f)
        if value is None:
            if not _has_default(f):
                kwargs[f.name] = _ZERO.get(expected)
            continue
        if not _type_matches(value, expected):
            raise InvalidArgumentError(
                f"decode json: cannot use {type(value).__name__} for field {name!r}:"
                " invalid argument"
            )
        kwargs[f.name] = value

    instance = model(**kwargs)

    validate = getattr(instance, "validate", None)
    if callable(validate):
        try:
            validate()
        except Exception as exc:
            raise InvalidArgumentError(
                f"request validation: {exc}: invalid argument"
            ) from exc
        return instance

    for f in dataclasses.fields(model):
        if f.metadata.get("required") and not getattr(instance, f.name):
            name = f.metadata.get("json", f.name)
            raise InvalidArgumentError(
                f"request validation: field {name!r} is required: invalid argument"
            )
    return instance


def get_int_path_value(request: Request, key: str) -> int:
    """Return the named path parameter as an integer."""
    value = request.path_params.get(key, "")
    if value == "":
        raise InvalidArgumentError(f"no key='{key}' in path values: invalid argument")
    try:
        return _atoi(value)
    except ValueError as exc:
        raise InvalidArgumentError(
            f"path value='{value}' by key='{key}' not a valid integer: {exc}: invalid argument"
        ) from exc


def get_int_query_param(request: Request, key: str) -> Optional[int]:
    """Return the named query parameter as an integer, or None when absent or empty."""
    value = request.query.get(key, [""])[0]
    if value == "":
        return None
    try:
        return _atoi(value)
    except ValueError as exc:
        raise InvalidArgumentError(
            f"param='{value}' by key='{key}' not a valid integer: {exc}: invalid argument"
        ) from exc