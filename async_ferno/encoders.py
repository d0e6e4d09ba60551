"""The module houses encoders and decoders needed to exchange payloads with the database.

"""
import json
import types
import typing as t
from dataclasses import MISSING, asdict, fields, is_dataclass
from urllib.parse import urlencode

from async_ferno.errors import DecodeError, EncodingError


F = t.TypeVar("F")


def encode_json_body(body: t.Any) -> t.Optional[bytes]:
    """Encode request body to JSON.

    :param body: JSON serializable value or a dataclass instance, ``None`` means no body.
    :raises: ``errors.EncodingError`` if the body cannot be serialized.
    :return: UTF-8 encoded JSON document or ``None``.
    """
    if body is None:
        return None
    if is_dataclass(body) and not isinstance(body, type):
        body = asdict(body)
    try:
        return json.dumps(body, separators=(",", ":"), allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"Request body of type {type(body).__name__} is not JSON serializable: {exc}", cause=exc)


def encode_form_body(data: t.Mapping[str, str]) -> bytes:
    """Encode fields as ``application/x-www-form-urlencoded``."""
    return urlencode(data).encode("utf-8")


def _type_name(tp: t.Any) -> str:
    return getattr(tp, "__name__", None) or str(tp)


def decode_value(value: t.Any, tp: t.Any, location: str = "$") -> t.Any:
    """
    Convert a parsed JSON value into the declared shape.

    Supported shapes are dataclasses (unknown keys are ignored, nested dataclasses are decoded recursively),
    ``typing.List``, ``typing.Dict`` with string keys, ``typing.Optional``/``typing.Union``, ``typing.Any`` and
    the JSON primitives ``str``, ``int``, ``float``, ``bool``.

    :param value: value produced by ``json.loads``.
    :param tp: the declared shape.
    :param location: JSON path of the value, used in error messages.
    :raises: ``errors.DecodeError`` if the value does not match the shape.
    """
    if tp is t.Any or tp is object:
        return value

    origin = t.get_origin(tp)
    args = t.get_args(tp)

    if origin is t.Union or origin is getattr(types, "UnionType", t.Union):
        for option in args:
            if option is type(None):
                if value is None:
                    return None
                continue
            try:
                return decode_value(value, option, location)
            except DecodeError:
                continue
        raise DecodeError(f"{location}: {value!r} does not match {tp}")

    if origin in (list, t.List):
        if not isinstance(value, list):
            raise DecodeError(f"{location}: expected a list, got {type(value).__name__}")
        item_type = args[0] if args else t.Any
        return [decode_value(item, item_type, f"{location}[{i}]") for i, item in enumerate(value)]

    if origin in (dict, t.Dict):
        if not isinstance(value, dict):
            raise DecodeError(f"{location}: expected an object, got {type(value).__name__}")
        item_type = args[1] if args else t.Any
        return {key: decode_value(item, item_type, f"{location}.{key}") for key, item in value.items()}

    if is_dataclass(tp):
        if not isinstance(value, dict):
            raise DecodeError(f"{location}: expected an object for {_type_name(tp)}, got {type(value).__name__}")
        try:
            hints = t.get_type_hints(tp)
        except (NameError, TypeError) as exc:
            raise DecodeError(f"{location}: unable to resolve field types of {_type_name(tp)}: {exc}", cause=exc)
        kwargs = {}
        for f in fields(tp):
            if not f.init:
                continue
            if f.name in value:
                kwargs[f.name] = decode_value(value[f.name], hints.get(f.name, t.Any), f"{location}.{f.name}")
            elif f.default is MISSING and f.default_factory is MISSING:  # type: ignore
                raise DecodeError(f"{location}: missing field {f.name!r} of {_type_name(tp)}")
        return tp(**kwargs)

    if tp is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif tp is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif tp in (str, bool, list, dict):
        if isinstance(value, tp):
            return value
    elif tp is type(None):
        if value is None:
            return None
    else:
        raise DecodeError(f"{location}: unsupported shape {_type_name(tp)}")

    raise DecodeError(f"{location}: expected {_type_name(tp)}, got {type(value).__name__}")


def decode_json(content: bytes, tp: t.Type[F]) -> F:
    """Parse ``content`` as JSON and decode it into ``tp``."""
    try:
        data = json.loads(content)
    except ValueError as exc:
        raise DecodeError(f"Response body is not valid JSON: {exc}", cause=exc)
    return decode_value(data, tp)
