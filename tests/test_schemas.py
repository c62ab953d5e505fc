import pytest

from schemaclass import FieldValidationError, Undefined, schemas


def test_number_converts_numeric_strings() -> None:
    result = schemas.number().validate("10")

    assert result.error is None
    assert result.value == 10
    assert schemas.number().validate("1.5").value == 1.5


def test_invalid_value_is_returned_not_raised() -> None:
    result = schemas.integer().validate("10y")

    assert isinstance(result.error, FieldValidationError)
    assert result.value == "10y"
    assert not result.is_valid


def test_string_does_not_accept_numbers() -> None:
    assert schemas.string().validate(5).error is not None
    assert schemas.string().validate("5").value == "5"


def test_boolean_and_func() -> None:
    assert schemas.boolean().validate("true").value is True
    assert schemas.func().validate(len).value is len
    assert schemas.func().validate(5).error is not None


def test_numbers_refuse_booleans() -> None:
    result = schemas.number().validate(True)

    assert result.error is not None
    assert result.value is True
    assert schemas.integer().validate(False).error is not None
    assert schemas.integer().allow_none().validate(None).value is None


def test_strict_disables_conversion() -> None:
    assert schemas.integer().validate("5", strict=True).error is not None
    assert schemas.integer().validate(5, strict=True).value == 5


def test_undefined_resolves_default() -> None:
    assert schemas.integer().default(1).validate(Undefined).value == 1
    assert schemas.integer().default(lambda: 3).validate(Undefined).value == 3
    assert schemas.integer().validate(Undefined).value is Undefined


def test_undefined_fails_when_required() -> None:
    result = schemas.string().required().validate(Undefined)

    assert isinstance(result.error, FieldValidationError)
    assert result.error.errors[0]["type"] == "missing"


def test_default_does_not_replace_none() -> None:
    result = schemas.integer().default(1).validate(None)

    assert result.error is not None
    assert result.value is None


def test_allow_none() -> None:
    assert schemas.string().validate(None).error is not None
    assert schemas.string().allow_none().validate(None).value is None


def test_numeric_bounds() -> None:
    schema = schemas.integer().min(1).max(199)

    assert schema.validate(0).error is not None
    assert schema.validate(200).error is not None
    assert schema.validate("5").value == 5


def test_length_bounds_and_pattern() -> None:
    schema = schemas.string().min(2).max(4).pattern(r"^[a-z]+$")

    assert schema.validate("a").error is not None
    assert schema.validate("abcde").error is not None
    assert schema.validate("ABC").error is not None
    assert schema.validate("abc").value == "abc"


def test_valid_values() -> None:
    schema = schemas.string().valid("a", "b")

    assert schema.validate("a").value == "a"
    assert schema.validate("c").error is not None


def test_array_items() -> None:
    schema = schemas.array(schemas.integer())

    assert schema.validate(["1", 2]).value == [1, 2]
    assert schema.validate(["x"]).error is not None
    assert schemas.array().validate([1, "a"]).value == [1, "a"]


def test_array_rejects_non_schema_items() -> None:
    with pytest.raises(TypeError):
        schemas.array(int)  # type: ignore[arg-type]


def test_unsupported_rules_raise() -> None:
    with pytest.raises(TypeError):
        schemas.boolean().min(1)
    with pytest.raises(TypeError):
        schemas.integer().pattern(r"\d")


def test_schemas_are_immutable() -> None:
    schema = schemas.string()
    required_schema = schema.required()

    assert schema.is_required is False
    assert required_schema.is_required is True


def test_attempt_raises() -> None:
    with pytest.raises(FieldValidationError):
        schemas.integer().attempt("abc")
    assert schemas.integer().attempt("4") == 4


def test_describe() -> None:
    schema = schemas.integer().min(1).label("age").required()

    assert schema.describe() == {
        "type": "integer",
        "label": "age",
        "flags": {"presence": "required"},
        "rules": [{"name": "min", "arg": 1}],
    }
    assert schemas.array(schemas.string()).describe()["items"] == {
        "type": "string",
        "flags": {},
    }
