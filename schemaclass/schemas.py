"""
Field schemas backed by pydantic.

A `FieldSchema` describes how a single field value is checked, coerced and
defaulted. Schemas are immutable, every chained call returns a new schema:

    schemas.integer().min(1).max(199).default(1)

The `schemas` factory is what field builders receive, e.g
`optional(lambda s: s.string().pattern(r"^[a-z]+$"))`.
"""

import copy
import functools
import logging
import operator
import re
import typing

import pydantic
from typing_extensions import Self

from ._utils import Undefined
from .exceptions import FieldValidationError, ModelValidationError

logger = logging.getLogger(__name__)

_T = typing.TypeVar("_T")


class ValidationResult(typing.NamedTuple):
    """Outcome of a validation run. Exactly one of a usable `value` or an `error`."""

    value: typing.Any
    error: typing.Optional[ModelValidationError] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None


def build_error(
    exc: pydantic.ValidationError,
    error_class: typing.Type[ModelValidationError] = ModelValidationError,
) -> ModelValidationError:
    """Convert a pydantic validation error to the package's error type, keeping it as the cause."""
    error = error_class(str(exc), exc.errors(include_url=False))
    error.__cause__ = exc
    return error


class Rule(typing.NamedTuple):
    """A named check applied after type validation/coercion."""

    name: str
    arg: typing.Any
    check: typing.Callable[[typing.Any], typing.Any]


def comparison_rule_factory(
    name: str,
    comparison_func: typing.Callable[[typing.Any, typing.Any], bool],
    symbol: str,
    measure: typing.Optional[typing.Callable[[typing.Any], typing.Any]] = None,
):
    """
    Builds a rule factory that compares a (measured) value against a bound.

    :param name: Name of the rule, as reported by `FieldSchema.describe`
    :param comparison_func: The comparison function to use
    :param symbol: The symbol to use in the error message
    :param measure: Optional function to derive the compared quantity, e.g `len`
    :return: A function taking the bound and returning a `Rule`
    """
    measured_name = f"{measure.__name__}(value)" if measure else "value"

    def rule_factory(bound: typing.Any) -> Rule:
        def check(value: typing.Any) -> typing.Any:
            measured = measure(value) if measure else value
            if comparison_func(measured, bound):
                return value
            raise ValueError(
                f"'{measured_name} {symbol} {bound}' is not True, got {measured!r}"
            )

        return Rule(name, bound, check)

    rule_factory.__name__ = f"{name}_rule_factory"
    return rule_factory


min_value = comparison_rule_factory("min", operator.ge, ">=")
max_value = comparison_rule_factory("max", operator.le, "<=")
min_length = comparison_rule_factory("min", operator.ge, ">=", len)
max_length = comparison_rule_factory("max", operator.le, "<=", len)


def pattern_rule(regex: typing.Union[str, re.Pattern]) -> Rule:
    compiled = re.compile(regex)

    def check(value: str) -> str:
        if compiled.search(value) is None:
            raise ValueError(f"{value!r} does not match pattern {compiled.pattern!r}")
        return value

    return Rule("pattern", compiled.pattern, check)


def valid_rule(values: typing.Tuple[typing.Any, ...]) -> Rule:
    def check(value: typing.Any) -> typing.Any:
        if value not in values:
            raise ValueError(f"{value!r} is not one of {list(values)!r}")
        return value

    return Rule("valid", values, check)


def reject_bool(value: typing.Any) -> typing.Any:
    """Refuse booleans, which pydantic would otherwise coerce to 0 and 1."""
    if isinstance(value, bool):
        raise ValueError(f"{value!r} is a boolean, not a number")
    return value


_NUMERIC_TYPES = frozenset({"number", "integer"})
_SIZED_TYPES = frozenset({"string", "array"})


class FieldSchema:
    """Immutable description of a single field's validation rules."""

    def __init__(
        self,
        annotation: typing.Any = typing.Any,
        type_name: str = "any",
        items: typing.Optional["FieldSchema"] = None,
    ) -> None:
        self.annotation = annotation
        self.type_name = type_name
        self.items = items
        self.is_required = False
        self.nullable = False
        self.default_value: typing.Any = Undefined
        self.label_name: typing.Optional[str] = None
        self.rules: typing.Tuple[Rule, ...] = ()

    def _clone(self, **changes: typing.Any) -> Self:
        clone = copy.copy(self)
        # Drop the cached adapter, it was built for the old rules.
        clone.__dict__.pop("adapter", None)
        for key, value in changes.items():
            setattr(clone, key, value)
        return clone

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.describe()!r}>"

    def required(self) -> Self:
        """Mark the value as required. An undefined value then fails validation."""
        return self._clone(is_required=True)

    def optional(self) -> Self:
        return self._clone(is_required=False)

    def default(self, value: typing.Any) -> Self:
        """
        Set the value used when none is given.

        :param value: The default value, or a callable returning it.
        """
        return self._clone(default_value=value)

    def allow_none(self) -> Self:
        """Accept `None` in addition to values of the schema's type."""
        return self._clone(nullable=True)

    def label(self, name: str) -> Self:
        return self._clone(label_name=name)

    def min(self, bound: typing.Any) -> Self:
        """Lower bound for numbers, minimum length for strings and arrays."""
        if self.type_name in _NUMERIC_TYPES:
            return self._add_rule(min_value(bound))
        if self.type_name in _SIZED_TYPES:
            return self._add_rule(min_length(bound))
        raise TypeError(f"min() is not supported by '{self.type_name}' schemas")

    def max(self, bound: typing.Any) -> Self:
        """Upper bound for numbers, maximum length for strings and arrays."""
        if self.type_name in _NUMERIC_TYPES:
            return self._add_rule(max_value(bound))
        if self.type_name in _SIZED_TYPES:
            return self._add_rule(max_length(bound))
        raise TypeError(f"max() is not supported by '{self.type_name}' schemas")

    def pattern(self, regex: typing.Union[str, re.Pattern]) -> Self:
        if self.type_name != "string":
            raise TypeError(
                f"pattern() is not supported by '{self.type_name}' schemas"
            )
        return self._add_rule(pattern_rule(regex))

    def valid(self, *values: typing.Any) -> Self:
        """Only accept the given values."""
        if not values:
            raise ValueError("At least one value must be provided.")
        return self._add_rule(valid_rule(values))

    def _add_rule(self, rule: Rule) -> Self:
        return self._clone(rules=(*self.rules, rule))

    def get_default(self) -> typing.Any:
        """Return the default value, calling it if it is a factory."""
        if callable(self.default_value):
            return self.default_value()
        return self.default_value

    def build_annotation(self) -> typing.Any:
        """Return the pydantic type annotation enforcing this schema."""
        annotation = self.annotation
        if self.items is not None:
            annotation = typing.List[self.items.build_annotation()]

        if self.rules:
            validators = [pydantic.AfterValidator(rule.check) for rule in self.rules]
            annotation = typing.Annotated[(annotation, *validators)]
        if self.nullable:
            annotation = typing.Optional[annotation]
        return annotation

    def build_field(
        self, alias: str
    ) -> typing.Tuple[typing.Any, typing.Any]:
        """
        Return the `(annotation, FieldInfo)` pair for use in an object shape.

        Optional fields without a default get `Undefined` as pydantic default,
        so the shape can tell them apart from explicitly given values.

        :param alias: The key the field is read from.
        """
        kwargs: typing.Dict[str, typing.Any] = {"alias": alias}
        if not self.is_required:
            if callable(self.default_value):
                kwargs["default_factory"] = self.default_value
            else:
                kwargs["default"] = self.default_value
        if self.label_name:
            kwargs["title"] = self.label_name
        return self.build_annotation(), pydantic.Field(**kwargs)

    @functools.cached_property
    def adapter(self) -> pydantic.TypeAdapter:
        return pydantic.TypeAdapter(self.build_annotation())

    def validate(self, value: typing.Any, *, strict: bool = False) -> ValidationResult:
        """
        Validate a single value.

        `Undefined` resolves to the default value, and fails only when the schema
        is required. Never raises for invalid values, the error is returned.

        :param value: The value to validate.
        :param strict: If True, disable type coercion.
        :return: The validation result, holding the coerced value on success.
        """
        name = self.label_name or "value"
        if value is Undefined:
            if self.default_value is not Undefined and not self.is_required:
                return ValidationResult(self.get_default())
            if self.is_required:
                return ValidationResult(
                    value,
                    FieldValidationError(
                        f"'{name}' is required",
                        [
                            {
                                "type": "missing",
                                "loc": (name,),
                                "msg": "Field required",
                                "input": value,
                            }
                        ],
                    ),
                )
            return ValidationResult(value)

        try:
            validated = self.adapter.validate_python(value, strict=strict or None)
        except pydantic.ValidationError as exc:
            logger.debug("Value %r is invalid for '%s': %s", value, name, exc)
            return ValidationResult(value, build_error(exc, FieldValidationError))
        return ValidationResult(validated)

    def attempt(self, value: typing.Any, *, strict: bool = False) -> typing.Any:
        """Validate a single value, raising the error if validation fails."""
        result = self.validate(value, strict=strict)
        if result.error is not None:
            raise result.error
        return result.value

    def describe(self) -> typing.Dict[str, typing.Any]:
        """Return a plain description of the schema, useful for introspection."""
        description: typing.Dict[str, typing.Any] = {"type": self.type_name}
        if self.label_name:
            description["label"] = self.label_name

        flags: typing.Dict[str, typing.Any] = {}
        if self.is_required:
            flags["presence"] = "required"
        if self.nullable:
            flags["allow_none"] = True
        if self.default_value is not Undefined:
            flags["default"] = self.default_value
        description["flags"] = flags

        if self.rules:
            description["rules"] = [
                {"name": rule.name, "arg": rule.arg} for rule in self.rules
            ]
        if self.items is not None:
            description["items"] = self.items.describe()
        return description


class SchemaFactory:
    """Creates field schemas. Passed to field builder functions."""

    @staticmethod
    def any_() -> FieldSchema:
        """Accept any value."""
        return FieldSchema(typing.Any, "any")

    @staticmethod
    def string() -> FieldSchema:
        return FieldSchema(str, "string")

    @staticmethod
    def number() -> FieldSchema:
        """Accept integers and floats, numeric strings are converted. Booleans are refused."""
        return FieldSchema(
            typing.Annotated[
                typing.Union[int, float], pydantic.BeforeValidator(reject_bool)
            ],
            "number",
        )

    @staticmethod
    def integer() -> FieldSchema:
        return FieldSchema(
            typing.Annotated[int, pydantic.BeforeValidator(reject_bool)], "integer"
        )

    @staticmethod
    def boolean() -> FieldSchema:
        return FieldSchema(bool, "boolean")

    @staticmethod
    def func() -> FieldSchema:
        """Accept callables."""
        return FieldSchema(typing.Callable, "func")

    @staticmethod
    def array(items: typing.Optional[FieldSchema] = None) -> FieldSchema:
        """
        Accept lists, optionally checking every item.

        :param items: Schema each item must match.
        """
        if items is not None and not isinstance(items, FieldSchema):
            raise TypeError(f"Array items must be a FieldSchema, got {items!r}")
        return FieldSchema(typing.List[typing.Any], "array", items=items)


schemas = SchemaFactory()
