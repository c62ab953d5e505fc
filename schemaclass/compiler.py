"""Compilation of model metadata to structural validators."""

import logging
import threading
import typing

import pydantic

from ._utils import Undefined
from .exceptions import CircularReferenceError
from .metadata import ClassCache, Metadata, get_metadata
from .schemas import ValidationResult, build_error

logger = logging.getLogger(__name__)

_validator_cache: "ClassCache[ModelValidator]" = ClassCache("validator")
_local = threading.local()


def _compilation_stack() -> typing.List[type]:
    stack = getattr(_local, "stack", None)
    if stack is None:
        stack = _local.stack = []
    return stack


def to_plain(value: typing.Any) -> typing.Any:
    """
    Convert a validated pydantic value to plain data.

    Fields left `Undefined` are dropped, unknown keys kept by the shape are included.
    """
    if isinstance(value, pydantic.BaseModel):
        plain = {}
        for name, info in type(value).model_fields.items():
            item = getattr(value, name)
            if item is Undefined:
                continue
            plain[info.alias or name] = to_plain(item)
        if value.model_extra:
            plain.update(value.model_extra)
        return plain
    if isinstance(value, list):
        return [to_plain(item) for item in value]
    return value


class ModelValidator:
    """
    Structural validator compiled from the metadata of a model class.

    Fields with a schema use it as is. Reference fields use the referenced
    model's validator, or a list of it. Other fields are not constrained.
    """

    def __init__(self, model_cls: typing.Type[typing.Any], metadata: Metadata) -> None:
        self.model_cls = model_cls
        self.metadata = metadata
        self._shapes: typing.Dict[str, typing.Type[pydantic.BaseModel]] = {}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} for {self.model_cls.__qualname__}: {list(self.fields)}>"

    @property
    def fields(self) -> typing.Tuple[str, ...]:
        """Names of the fields constrained by this validator."""
        return tuple(
            name
            for name, declaration in self.metadata.items()
            if declaration.validator is not None or declaration.reference is not None
        )

    def pydantic_model(self, allow_unknown: bool = True) -> typing.Type[pydantic.BaseModel]:
        """
        Return the pydantic model enforcing the object shape.

        :param allow_unknown: If True, unknown keys are accepted and kept,
            otherwise they are rejected.
        """
        extra = "allow" if allow_unknown else "forbid"
        shape = self._shapes.get(extra)
        if shape is None:
            shape = self._shapes.setdefault(extra, self._build_shape(extra))
        return shape

    def _build_shape(self, extra: str) -> typing.Type[pydantic.BaseModel]:
        allow_unknown = extra == "allow"
        field_definitions: typing.Dict[str, typing.Any] = {}
        for index, (name, declaration) in enumerate(self.metadata.items()):
            # Declared names are used as aliases, so any name is a legal key
            key = f"field_{index}"
            if declaration.validator is not None:
                field_definitions[key] = declaration.validator.build_field(alias=name)
                continue

            ref = declaration.reference
            if ref is None:
                continue

            nested = get_validator(ref.model).pydantic_model(allow_unknown)
            annotation = typing.List[nested] if ref.many else nested
            if declaration.required:
                field_info = pydantic.Field(alias=name, title=name)
            else:
                field_info = pydantic.Field(default=Undefined, alias=name, title=name)
            field_definitions[key] = (annotation, field_info)

        return pydantic.create_model(
            self.model_cls.__name__,
            __config__=pydantic.ConfigDict(extra=extra),
            **field_definitions,
        )

    def validate(
        self,
        data: typing.Any,
        *,
        allow_unknown: bool = True,
        strict: bool = False,
    ) -> ValidationResult:
        """
        Validate plain data against the object shape.

        :param data: Mapping of field names to values.
        :param allow_unknown: If True, keys that are not declared fields are tolerated.
        :param strict: If True, disable type coercion.
        :return: The result, with the coerced and defaulted data as value if valid.
        """
        shape = self.pydantic_model(allow_unknown)
        try:
            validated = shape.model_validate(data, strict=strict or None)
        except pydantic.ValidationError as exc:
            logger.debug(
                "%s failed validation with %d error(s)",
                self.model_cls.__qualname__,
                exc.error_count(),
            )
            return ValidationResult(data, build_error(exc))
        return ValidationResult(to_plain(validated))

    def attempt(self, data: typing.Any, **options: typing.Any) -> typing.Any:
        """
        Validate plain data, raising on failure.

        :raises ModelValidationError: If the data is invalid.
        :return: The coerced and defaulted data.
        """
        result = self.validate(data, **options)
        if result.error is not None:
            raise result.error
        return result.value


def compile_validator(model_cls: typing.Type[typing.Any]) -> ModelValidator:
    """
    Compile the structural validator of a model class.

    Referenced models are compiled first. A reference back to a class
    that is still being compiled is a cycle.

    :raises CircularReferenceError: If model references form a cycle.
    """
    stack = _compilation_stack()
    if model_cls in stack:
        path = [*stack[stack.index(model_cls) :], model_cls]
        raise CircularReferenceError(path)

    stack.append(model_cls)
    try:
        validator = ModelValidator(model_cls, get_metadata(model_cls))
        validator.pydantic_model()
    finally:
        stack.pop()

    logger.debug("Compiled validator for %s", model_cls.__qualname__)
    return validator


def get_validator(model_cls: typing.Type[typing.Any]) -> ModelValidator:
    """Return the compiled validator of a model class, compiling it once."""
    return _validator_cache.get_or_compute(model_cls, compile_validator)


__all__ = [
    "ModelValidator",
    "compile_validator",
    "get_validator",
    "to_plain",
]
