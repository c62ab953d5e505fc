"""Field declarations for model classes."""

import inspect
import logging
import typing

from ._utils import (
    Undefined,
    is_callable_type,
    is_concrete_type,
    literal_values,
    resolve_forward_ref,
)
from .exceptions import DeclarationError
from .metadata import is_model_class, is_resolved, own_declarations, DECLARATIONS_ATTR
from .schemas import FieldSchema, SchemaFactory, schemas

logger = logging.getLogger(__name__)

SchemaBuilder: typing.TypeAlias = typing.Callable[[SchemaFactory], FieldSchema]
"""Takes the schema factory and returns the schema for a field."""

ReferenceTarget: typing.TypeAlias = typing.Union[
    typing.Type[typing.Any], typing.List[typing.Type[typing.Any]]
]


class Reference(typing.NamedTuple):
    """A field holding a nested model instance, or a list of them if `many`."""

    model: typing.Type[typing.Any]
    many: bool = False


class FieldDeclaration(typing.NamedTuple):
    """The declared intent for one field of one class."""

    name: str
    required: bool
    validator: typing.Optional[FieldSchema]
    reference: typing.Optional[Reference]
    owner: typing.Type[typing.Any]

    @property
    def kind(self) -> str:
        return "required" if self.required else "optional"


_TYPE_SCHEMAS: typing.Dict[type, typing.Callable[[], FieldSchema]] = {
    int: schemas.integer,
    float: schemas.number,
    str: schemas.string,
    bool: schemas.boolean,
}


def schema_for_type(annotation: typing.Any) -> FieldSchema:
    """
    Return the schema for a field's annotated type.

    Only `int`, `float`, `str`, `bool`, callables and literals of those
    are understood. Anything else gets a schema accepting any value.
    """
    if is_concrete_type(annotation) and annotation in _TYPE_SCHEMAS:
        return _TYPE_SCHEMAS[annotation]()
    if is_callable_type(annotation):
        return schemas.func()

    values = literal_values(annotation)
    if values:
        if all(isinstance(value, bool) for value in values):
            return schemas.boolean()
        if all(isinstance(value, str) for value in values):
            return schemas.string()
        if all(
            isinstance(value, (int, float)) and not isinstance(value, bool)
            for value in values
        ):
            return schemas.number()
    return schemas.any_()


def load_reference(target: ReferenceTarget) -> Reference:
    """Convert a reference target, `Model` or `[Model]`, to a `Reference`."""
    if isinstance(target, (list, tuple)):
        if len(target) != 1:
            raise DeclarationError(
                f"An array reference takes exactly one model class, got {target!r}"
            )
        model, many = target[0], True
    else:
        model, many = target, False

    if not is_model_class(model):
        raise DeclarationError(f"Reference target {model!r} is not a model class.")
    return Reference(model, many)


def get_own_annotations(cls: type) -> typing.Dict[str, typing.Any]:
    """Return the annotations written in the body of `cls`."""
    try:
        return dict(inspect.get_annotations(cls))
    except NameError:
        # Names not yet bound are left as forward references
        return dict(inspect.get_annotations(cls, format=inspect.Format.FORWARDREF))


def declare(
    model_cls: typing.Type[typing.Any],
    name: str,
    *,
    required: bool = False,
    builder: typing.Optional[SchemaBuilder] = None,
    annotation: typing.Any = Undefined,
    reference: typing.Optional[ReferenceTarget] = None,
) -> FieldDeclaration:
    """
    Record a field declaration on a model class.

    The declaration is stored on `model_cls` only, not on its subclasses
    or bases. The annotation is inspected when no `reference` is given:
    a model class annotation becomes a reference, anything else is turned
    into a schema, unless `builder` is given.

    A string annotation only resolves if the name is already bound in the
    class's module when the class is defined. Classes defined further down
    the module are not found and the field accepts any value. Use an
    explicit `reference` for such fields.

    :param model_cls: The model class the field belongs to.
    :param name: The field name.
    :param required: If True, the field must be given a value.
    :param builder: Function receiving the schema factory and returning the field's schema.
    :param annotation: The annotated type of the field.
    :param reference: A model class, or a one-item list of one, held by the field.
    :return: The stored declaration.
    :raises DeclarationError: If the declaration is malformed or the class's
        metadata is already resolved.
    """
    if DECLARATIONS_ATTR not in vars(model_cls):
        raise DeclarationError(f"'{model_cls.__name__}' is not a model class.")
    if is_resolved(model_cls):
        raise DeclarationError(
            f"Cannot declare '{model_cls.__name__}.{name}'. "
            "Field declarations are frozen once the class's metadata is resolved."
        )

    if reference is not None:
        declaration = FieldDeclaration(
            name, required, None, load_reference(reference), model_cls
        )
    else:
        annotation = resolve_forward_ref(annotation, model_cls.__module__)
        if is_model_class(annotation):
            declaration = FieldDeclaration(
                name, required, None, Reference(annotation), model_cls
            )
        else:
            schema = builder(schemas) if builder else schema_for_type(annotation)
            if not isinstance(schema, FieldSchema):
                raise DeclarationError(
                    f"Builder for '{model_cls.__name__}.{name}' must return a FieldSchema, "
                    f"got {schema!r}"
                )
            schema = schema.label(name)
            if required:
                schema = schema.required()
            declaration = FieldDeclaration(name, required, schema, None, model_cls)

    own_declarations(model_cls)[name] = declaration
    logger.debug(
        "Declared %s field '%s.%s'", declaration.kind, model_cls.__qualname__, name
    )
    return declaration


class Field:
    """
    Attribute marking a model class field.

    Bound to its class at class creation. Reading an unset field from an
    instance returns `Undefined`.
    """

    def __init__(
        self,
        *,
        required: bool = False,
        builder: typing.Optional[SchemaBuilder] = None,
        reference: typing.Optional[ReferenceTarget] = None,
    ) -> None:
        if builder is not None and not callable(builder):
            raise DeclarationError(f"Field builder {builder!r} is not callable.")
        self.required = required
        self.builder = builder
        self.reference = reference
        self.name: typing.Optional[str] = None
        self.declaration: typing.Optional[FieldDeclaration] = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} required={self.required}>"

    def bind(
        self,
        parent: typing.Type[typing.Any],
        name: str,
        annotation: typing.Any = Undefined,
    ) -> None:
        """
        Called when the field is bound to a parent class.

        :param parent: The parent class to which the field is bound.
        :param name: The name of the field.
        :param annotation: The annotated type of the field, if any.
        """
        self.name = name
        self.declaration = declare(
            parent,
            name,
            required=self.required,
            builder=self.builder,
            annotation=annotation,
            reference=self.reference,
        )

    def __get__(
        self,
        instance: typing.Optional[typing.Any],
        owner: typing.Optional[typing.Type[typing.Any]] = None,
    ) -> typing.Any:
        if instance is None:
            return self
        # Only reached when the instance has no value of its own
        return Undefined


def required(builder: typing.Optional[SchemaBuilder] = None) -> typing.Any:
    """
    Declare a required field.

    Example:
    ```python
    class User(Model):
        id: str = required()
        age: int = required(lambda s: s.integer().min(0))
    ```
    """
    return Field(required=True, builder=builder)


def optional(builder: typing.Optional[SchemaBuilder] = None) -> typing.Any:
    """Declare an optional field. See `required`."""
    return Field(required=False, builder=builder)


def reference(target: ReferenceTarget, *, required: bool = False) -> typing.Any:
    """
    Declare a field holding a nested model instance.

    Pass a list with the model class, `reference([Pet])`, for a list of instances.
    Needed for lists of models, and for models defined later in the module,
    since neither can be detected from the annotation.
    """
    return Field(required=required, reference=target)


__all__ = [
    "Field",
    "FieldDeclaration",
    "Reference",
    "declare",
    "required",
    "optional",
    "reference",
    "schema_for_type",
]
