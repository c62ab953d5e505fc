"""Model classes with declared fields, validation and nested model support."""

import logging
import typing
from collections.abc import Mapping, MutableMapping

from typing_extensions import Self, Unpack

from ._utils import Undefined, is_sequence
from .compiler import ModelValidator, get_validator
from .config import ParseOptions, ValidationOptions, parse_options, validation_options
from .fields import Field, get_own_annotations
from .metadata import DECLARATIONS_ATTR, Metadata, get_metadata
from .schemas import ValidationResult
from . import serializers

logger = logging.getLogger(__name__)


def _model_repr(instance: "Model") -> str:
    """Build a string representation of the model instance."""
    field_strs = []
    for name in get_metadata(type(instance)):
        value = getattr(instance, name, Undefined)
        field_strs.append(f"{name}={value!r}")
    return f"{type(instance).__name__}({', '.join(field_strs)})"


def _model_eq(instance: "Model", other: typing.Any) -> bool:
    """Compare two model instances by their field values."""
    if not isinstance(other, instance.__class__):
        return NotImplemented
    if instance is other:
        return True

    for name in get_metadata(type(instance)):
        if getattr(instance, name, Undefined) != getattr(other, name, Undefined):
            return False
    return True


def _model_getitem(instance: "Model", key: str) -> typing.Any:
    if key not in get_metadata(type(instance)):
        raise KeyError(key)
    return getattr(instance, key, Undefined)


def _model_setitem(instance: "Model", key: str, value: typing.Any) -> None:
    if key not in get_metadata(type(instance)):
        raise KeyError(key)
    setattr(instance, key, value)


class ModelMeta(type):
    """Metaclass for Model types"""

    def __new__(
        cls,
        name: str,
        bases: typing.Tuple[typing.Type],
        attrs: typing.Dict[str, typing.Any],
        repr: bool = False,
        eq: bool = False,
        getitem: bool = False,
        setitem: bool = False,
    ):
        """
        Create a new Model type.

        Fields in the class body declare themselves on the new class when it is created.

        :param name: Name of the new class.
        :param bases: Base classes for the new class.
        :param attrs: Attributes and namespace for the new class.
        :param repr: If True, add a __repr__ listing the field values.
        :param eq: If True, add an __eq__ comparing field values.
        :param getitem: If True, add __getitem__ for field access by name.
        :param setitem: If True, add __setitem__ for field assignment by name.
        :return: New Model type
        """
        # Own declarations only, inherited ones are merged on resolution
        attrs[DECLARATIONS_ATTR] = {}
        if repr:
            attrs["__repr__"] = _model_repr
        if eq:
            attrs["__eq__"] = _model_eq
            attrs["__hash__"] = None
        if getitem:
            attrs["__getitem__"] = _model_getitem
        if setitem:
            attrs["__setitem__"] = _model_setitem

        new_cls = super().__new__(cls, name, bases, attrs)
        annotations = get_own_annotations(new_cls)
        for key, value in attrs.items():
            if isinstance(value, Field):
                value.bind(new_cls, key, annotations.get(key, Undefined))
        return new_cls

    @property
    def metadata(cls) -> Metadata:
        """Field name to resolved declaration, merged across the class hierarchy."""
        return get_metadata(cls)

    @property
    def validator(cls) -> ModelValidator:
        """The compiled structural validator of the class."""
        return get_validator(cls)


def _parse_model_list(
    model_cls: typing.Type["Model"],
    value: typing.Any,
    options: ParseOptions,
) -> typing.List[typing.Any]:
    if not is_sequence(value):
        return []
    items = []
    for item in value:
        if not isinstance(item, model_cls):
            if serializers.has_portable_form(item):
                item = item.to_portable()
            item = model_cls(item, **options)
        items.append(item)
    return items


class Model(metaclass=ModelMeta, repr=True, eq=True):
    """
    Base class for models.

    Models are defined by subclassing `Model` and declaring fields with
    `required`, `optional` or `reference`. Fields are inherited, and a
    subclass may redeclare an inherited field.

    There are three ways to create an empty instance:
    - `Model()`, no field is set.
    - `Model({})`, every field is set, defaults applied.
    - `Model({}, convert=False)`, every field is set to `Undefined`.
    """

    def __init__(
        self,
        data: typing.Optional[typing.Mapping[str, typing.Any]] = None,
        **options: Unpack[ParseOptions],
    ) -> None:
        """
        Initialize the model, parsing `data` if given.

        :param data: Raw data to initialize the model with.
        :param options: Parse options, see `parse`.
        """
        options = parse_options(**options)
        if data is not None:
            self.parse(data, **options)

    @classmethod
    def build(
        cls,
        data: typing.Optional[typing.Mapping[str, typing.Any]] = None,
        **options: Unpack[ParseOptions],
    ) -> Self:
        """Create an instance, parsing `data` if given."""
        options = parse_options(**options)
        instance = cls()
        if data is not None:
            instance.parse(data, **options)
        return instance

    def parse(
        self,
        data: typing.Mapping[str, typing.Any],
        **options: Unpack[ParseOptions],
    ) -> Self:
        """
        Parse raw data into this instance, recursively.

        Never raises for invalid data. Invalid values are stored as given,
        for `validate` to report.

        - Reference fields missing from `data` are left untouched.
        - `None`, `Undefined` and instances of the referenced model are stored as is.
        - A mapping, or an instance of another model, given for a reference
          field is parsed into the existing nested instance, or into a new one
          if there is none. Other values are stored as given.
        - With `convert`, other values are cast and defaulted by the field's
          schema when valid.

        :param data: Mapping of field names to raw values.
        :param convert: Cast values and apply defaults using the field schemas. Defaults to True.
        :return: This same instance.
        """
        options = parse_options(**options)
        if not isinstance(data, Mapping):
            logger.debug(
                "Ignoring non-mapping data %r parsed into %s",
                data,
                type(self).__qualname__,
            )
            data = {}

        for name, declaration in get_metadata(type(self)).items():
            ref = declaration.reference
            if ref is not None:
                if name not in data:
                    continue
                if ref.many:
                    setattr(self, name, _parse_model_list(ref.model, data[name], options))
                else:
                    self._parse_reference(name, ref.model, data[name], options)
                continue

            value = data.get(name, Undefined)
            validator = declaration.validator
            if validator is not None and options["convert"]:
                result = validator.validate(value)
                setattr(self, name, value if result.error else result.value)
            else:
                setattr(self, name, value)
        return self

    def _parse_reference(
        self,
        name: str,
        model_cls: typing.Type["Model"],
        value: typing.Any,
        options: ParseOptions,
    ) -> None:
        if value is None or value is Undefined or isinstance(value, model_cls):
            setattr(self, name, value)
            return
        if serializers.has_portable_form(value):
            # Instances of other models are read through their plain data form
            value = value.to_portable()
        if not isinstance(value, Mapping):
            setattr(self, name, value)
            return

        current = vars(self).get(name, Undefined)
        if current is None or current is Undefined:
            logger.debug("Creating %s for '%s'", model_cls.__qualname__, name)
            setattr(self, name, model_cls(value, **options))
        elif callable(getattr(current, "parse", None)):
            current.parse(value, **options)
        elif isinstance(current, MutableMapping):
            current.update(value)
        elif hasattr(current, "__dict__"):
            for key, item in value.items():
                setattr(current, key, item)
        else:
            setattr(self, name, model_cls(value, **options))

    def validate(
        self,
        *,
        apply: bool = False,
        raise_exception: bool = False,
        **options: Unpack[ValidationOptions],
    ) -> ValidationResult:
        """
        Validate the instance's plain data form.

        The instance is left untouched unless `apply` is set. The returned
        value is a new plain data structure.

        :param apply: If valid, parse the validated value back into the instance,
            making defaults and coerced values visible on it.
        :param raise_exception: If invalid, raise the error instead of returning it.
        :param allow_unknown: Tolerate keys that are not declared fields. Defaults to True.
        :param strict: Disable type coercion. Defaults to False.
        :raises ModelValidationError: If invalid and `raise_exception` is set.
        """
        options = validation_options(**options)
        result = get_validator(type(self)).validate(self.to_portable(), **options)
        if result.error is not None:
            if raise_exception:
                raise result.error
        elif apply:
            self.parse(result.value)
        return result

    def attempt(self, **options: Unpack[ValidationOptions]) -> typing.Any:
        """
        Validate the instance, raising if it is invalid.

        :raises ModelValidationError: If the instance is invalid.
        :return: The validated plain data form.
        """
        return self.validate(raise_exception=True, **options).value

    def to_portable(self) -> typing.Dict[str, typing.Any]:
        """Return the plain data form of the instance."""
        return serializers.to_portable(self)

    def to_json(self) -> bytes:
        return serializers.to_json(self)


def is_set(instance: Model, name: str) -> bool:
    """Check if a field has been assigned on the instance, even to `Undefined`."""
    return name in vars(instance)


__all__ = ["Model", "ModelMeta", "is_set"]
