import datetime

import pytest

from schemaclass import (
    Model,
    SerializationError,
    Undefined,
    optional,
    reference,
    serialize,
    to_json,
)


class Pet(Model):
    name: str = optional()


class Profile(Model):
    name: str = optional()
    age: int = optional(lambda s: s.integer().default(1))


class User(Model):
    id: str = optional()
    profile: Profile = optional()
    pets: list = reference([Pet])
    joined: datetime.datetime = optional()


def test_to_portable_converts_nested_instances() -> None:
    pet = Pet({"name": "qq"})
    pet.bad = True
    user = User({"id": "1", "profile": {"name": "foo"}, "pets": [pet]})

    portable = user.to_portable()

    assert portable["profile"] == {"name": "foo", "age": 1}
    assert portable["pets"] == [{"name": "qq"}]
    assert isinstance(portable["pets"][0], dict)


def test_to_portable_leaves_out_undefined_and_keeps_none() -> None:
    user = User({"id": "1", "profile": None})

    assert user.joined is Undefined
    assert user.to_portable() == {"id": "1", "profile": None}
    assert User().to_portable() == {}


def test_serialize_python_format() -> None:
    user = User({"id": "1", "pets": [{"name": "qq"}]})
    assert serialize(user) == user.to_portable()


def test_serialize_json_format() -> None:
    joined = datetime.datetime(2024, 1, 2, 3, 4, 5)
    user = User({"id": "1", "joined": joined})

    assert serialize(user, fmt="json") == {
        "id": "1",
        "joined": "2024-01-02T03:04:05",
    }


def test_to_json() -> None:
    user = User({"id": "1", "profile": {"name": "foo"}})

    assert to_json(user) == user.to_json()
    assert user.to_json() == b'{"id":"1","profile":{"name":"foo","age":1}}'


def test_to_json_of_unserializable_value() -> None:
    user = User({"id": "1"})
    user.id = lambda: None

    with pytest.raises(SerializationError):
        user.to_json()


def test_unsupported_format() -> None:
    with pytest.raises(SerializationError):
        serialize(User(), fmt="yaml")  # type: ignore[arg-type]
