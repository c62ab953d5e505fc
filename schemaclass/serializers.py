import typing

import orjson

from ._utils import Undefined, is_sequence
from .exceptions import SerializationError
from .metadata import get_metadata


def has_portable_form(value: typing.Any) -> bool:
    """Check if a value is an instance that can convert itself to plain data."""
    return not isinstance(value, type) and callable(
        getattr(value, "to_portable", None)
    )


def _portable_value(value: typing.Any) -> typing.Any:
    if has_portable_form(value):
        return value.to_portable()
    if is_sequence(value):
        return [
            item.to_portable() if has_portable_form(item) else item for item in value
        ]
    return value


def to_portable(instance: typing.Any) -> typing.Dict[str, typing.Any]:
    """
    Return the plain data form of a model instance.

    Only declared fields are included. Undefined fields are left out,
    `None` is kept. Nested instances, including those in lists, are
    converted recursively.

    :param instance: The model instance.
    :return: A dictionary of field names to plain values.
    """
    portable = {}
    for name in get_metadata(type(instance)):
        value = getattr(instance, name, Undefined)
        if value is Undefined:
            continue
        portable[name] = _portable_value(value)
    return portable


def to_json(instance: typing.Any) -> bytes:
    """
    Serialize a model instance to JSON.

    :raises SerializationError: If a field value is not JSON serializable.
    """
    try:
        return orjson.dumps(to_portable(instance))
    except orjson.JSONEncodeError as exc:
        raise SerializationError(
            f"Failed to serialize '{type(instance).__name__}' to JSON."
        ) from exc


def serialize(
    instance: typing.Any,
    *,
    fmt: typing.Literal["python", "json"] = "python",
) -> typing.Any:
    """
    Return a serialized representation of a model instance.

    :param instance: The model instance.
    :param fmt: "python" for the plain data form, "json" for the same
        converted to JSON compatible types.
    :raises SerializationError: If the format is unsupported or serialization fails.
    """
    if fmt == "python":
        return to_portable(instance)
    if fmt == "json":
        return orjson.loads(to_json(instance))
    raise SerializationError(
        f"Unsupported serialization format {fmt!r}. Supported formats are: python, json."
    )
