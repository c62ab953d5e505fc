"""Default options for parsing and validating model instances."""

import typing
from types import MappingProxyType


class ParseOptions(typing.TypedDict, total=False):
    convert: bool
    """Run field validators on incoming values to cast them and apply defaults."""


class ValidationOptions(typing.TypedDict, total=False):
    allow_unknown: bool
    """Tolerate keys that are not declared fields."""
    strict: bool
    """Disable type coercion during validation."""


DEFAULT_PARSE_OPTIONS: typing.Mapping[str, typing.Any] = MappingProxyType(
    {"convert": True}
)
DEFAULT_VALIDATION_OPTIONS: typing.Mapping[str, typing.Any] = MappingProxyType(
    {"allow_unknown": True, "strict": False}
)


def parse_options(**options: typing.Any) -> ParseOptions:
    """Merge `options` over the default parse options."""
    merged = {**DEFAULT_PARSE_OPTIONS, **options}
    unknown = set(merged) - set(DEFAULT_PARSE_OPTIONS)
    if unknown:
        raise TypeError(f"Unknown parse option(s): {', '.join(sorted(unknown))}")
    return typing.cast(ParseOptions, merged)


def validation_options(**options: typing.Any) -> ValidationOptions:
    """Merge `options` over the default validation options."""
    merged = {**DEFAULT_VALIDATION_OPTIONS, **options}
    unknown = set(merged) - set(DEFAULT_VALIDATION_OPTIONS)
    if unknown:
        raise TypeError(
            f"Unknown validation option(s): {', '.join(sorted(unknown))}"
        )
    return typing.cast(ValidationOptions, merged)
