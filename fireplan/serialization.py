"""
Conversion between fireplan records and plain JSON-compatible data.

Every record in :mod:`fireplan.models` is a dataclass. ``to_dict`` walks a
record into dicts, lists, strings and numbers; ``from_dict`` rebuilds it from
the type hints, so ``from_dict(type(x), to_dict(x)) == x`` for every record.
"""

from __future__ import annotations

import dataclasses
import json
import types
import typing
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import Any, TypeVar, Union

from fireplan.exceptions import ValidationError

T = TypeVar("T")


def to_dict(obj: Any) -> Any:
    """Recursively convert a record (or container of records) to plain data."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_dict(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, (list, tuple)):
        return [to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): to_dict(v) for k, v in obj.items()}
    return obj


@lru_cache(maxsize=None)
def _hints(cls: type) -> dict[str, Any]:
    return typing.get_type_hints(cls)


def _convert(hint: Any, value: Any, path: str) -> Any:
    if hint is Any:
        return value

    origin = typing.get_origin(hint)
    args = typing.get_args(hint)

    if origin is Union or origin is types.UnionType:
        if value is None:
            if type(None) in args:
                return None
            raise ValidationError(path)
        last_error: Exception | None = None
        for arg in args:
            if arg is type(None):
                continue
            try:
                return _convert(arg, value, path)
            except (ValidationError, TypeError, ValueError) as e:
                last_error = e
        raise ValidationError(path, str(last_error))

    if value is None:
        raise ValidationError(path)

    if origin in (list, tuple):
        if not isinstance(value, (list, tuple)):
            raise ValidationError(path, "expected a sequence")
        item_hint = args[0] if args else Any
        items = [_convert(item_hint, v, f"{path}[{i}]") for i, v in enumerate(value)]
        return tuple(items) if origin is tuple else items

    if origin is dict:
        if not isinstance(value, dict):
            raise ValidationError(path, "expected a mapping")
        value_hint = args[1] if len(args) == 2 else Any
        return {k: _convert(value_hint, v, f"{path}.{k}") for k, v in value.items()}

    if isinstance(hint, type):
        if dataclasses.is_dataclass(hint):
            return from_dict(hint, value, path)
        if issubclass(hint, Enum):
            return hint(value)
        if hint is datetime:
            return value if isinstance(value, datetime) else datetime.fromisoformat(value)
        if hint is bool:
            return bool(value)
        if hint in (int, float):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(path, "expected a number")
            return hint(value)
        if hint is str:
            return str(value)

    return value


def from_dict(cls: type[T], data: dict[str, Any], path: str | None = None) -> T:
    """
    Build a record of type ``cls`` from plain data.

    Parameters
    ----------
    cls : type
        Target dataclass.
    data : dict
        Mapping as produced by :func:`to_dict`. Unknown keys are ignored.
    path : str, optional
        Field path prefix used in error messages.

    Raises
    ------
    ValidationError
        If a field without a default is missing or a value has the wrong type.
    """
    prefix = path or cls.__name__
    if not isinstance(data, dict):
        raise ValidationError(prefix, "expected a mapping")

    hints = _hints(cls)
    kwargs: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        field_path = f"{prefix}.{f.name}"
        if f.name not in data:
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                raise ValidationError(field_path)
            continue
        kwargs[f.name] = _convert(hints[f.name], data[f.name], field_path)
    return cls(**kwargs)


def to_json(obj: Any, indent: int | None = 2) -> str:
    """Serialize a record to a JSON string."""
    return json.dumps(to_dict(obj), indent=indent)


def from_json(cls: type[T], text: str) -> T:
    """Inverse of :func:`to_json`."""
    return from_dict(cls, json.loads(text))


class Serializable:
    """Mixin adding ``to_dict``/``from_dict`` to a dataclass."""

    def to_dict(self) -> dict[str, Any]:
        return to_dict(self)

    def to_json(self, indent: int | None = 2) -> str:
        return to_json(self, indent=indent)

    @classmethod
    def from_dict(cls: type[T], data: dict[str, Any]) -> T:
        return from_dict(cls, data)
