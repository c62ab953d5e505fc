import pytest

from schemaclass import (
    CircularReferenceError,
    Model,
    ModelValidationError,
    declare,
    get_validator,
    optional,
    reference,
    required,
)


class Pet(Model):
    name: str = optional()


class Profile(Model):
    name: str = optional(lambda s: s.string())
    age: int = optional(lambda s: s.integer().default(1))


class User(Model):
    id: int = required(lambda s: s.number())
    profile: Profile = optional()
    pets: list = reference([Pet])


def test_validator_is_memoized() -> None:
    validator = get_validator(User)

    assert get_validator(User) is validator
    assert User.validator is validator
    assert validator.fields == ("id", "profile", "pets")


def test_nested_validators_are_used() -> None:
    result = User.validator.validate(
        {"id": "7", "profile": {}, "pets": [{"name": "qq"}]}
    )

    assert result.error is None
    assert result.value == {
        "id": 7,
        "profile": {"age": 1},
        "pets": [{"name": "qq"}],
    }


def test_nested_errors_are_reported() -> None:
    result = User.validator.validate({"id": 1, "pets": [{"name": 5}]})

    assert isinstance(result.error, ModelValidationError)
    assert result.error.fields == ["pets"]
    assert result.error.errors[0]["loc"] == ("pets", 0, "name")


def test_required_field_missing() -> None:
    result = User.validator.validate({})

    assert result.error is not None
    assert result.error.fields == ["id"]


def test_unknown_keys_are_tolerated_by_default() -> None:
    result = User.validator.validate({"id": 1, "extra": True})

    assert result.error is None
    assert result.value == {"id": 1, "extra": True}


def test_unknown_keys_can_be_rejected() -> None:
    result = User.validator.validate({"id": 1, "extra": True}, allow_unknown=False)

    assert result.error is not None
    assert result.error.errors[0]["type"] == "extra_forbidden"


def test_strict_disables_coercion() -> None:
    assert User.validator.validate({"id": "1"}, strict=True).error is not None


def test_attempt() -> None:
    assert User.validator.attempt({"id": "2"}) == {"id": 2}
    with pytest.raises(ModelValidationError):
        User.validator.attempt({"id": "abc"})


def test_field_names_need_not_be_python_safe() -> None:
    class Odd(Model):
        model_config: str = required()
        json: int = optional()
        _private: str = optional()

    assert Odd.validator.attempt(
        {"model_config": "x", "json": "1", "_private": "p"}
    ) == {"model_config": "x", "json": 1, "_private": "p"}


def test_required_reference() -> None:
    class Owner(Model):
        pet = reference(Pet, required=True)

    assert Owner.validator.validate({}).error is not None
    assert Owner.validator.validate({"pet": {}}).error is None


def test_circular_references_fail_compilation() -> None:
    class CycleA(Model):
        pass

    class CycleB(Model):
        a = reference(CycleA)

    declare(CycleA, "b", reference=CycleB)

    with pytest.raises(CircularReferenceError) as exc_info:
        get_validator(CycleA)
    assert exc_info.value.path == (CycleA, CycleB, CycleA)

    with pytest.raises(CircularReferenceError):
        get_validator(CycleA)
