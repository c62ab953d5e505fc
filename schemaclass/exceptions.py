import typing


class SchemaClassError(Exception):
    """Base class for all schemaclass errors."""

    pass


class DeclarationError(SchemaClassError):
    """Exception raised for malformed or late field declarations."""

    pass


class CircularReferenceError(SchemaClassError):
    """Exception raised when model references form a cycle during compilation."""

    def __init__(self, path: typing.Sequence[typing.Type[typing.Any]]) -> None:
        self.path = tuple(path)
        names = " -> ".join(cls.__name__ for cls in self.path)
        super().__init__(f"Circular model reference detected: {names}")


class ModelValidationError(SchemaClassError):
    """
    Exception raised for validation errors.

    Carries the structured error description reported by the validation backend.
    Instances are returned (not raised) from `validate()` unless the caller
    asks for raising, in which case the same instance is raised.
    """

    def __init__(
        self,
        message: str,
        errors: typing.Optional[typing.List[typing.Dict[str, typing.Any]]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.errors = list(errors or [])

    @property
    def fields(self) -> typing.List[str]:
        """Names of the top level fields that failed validation."""
        names = []
        for error in self.errors:
            loc = error.get("loc") or ()
            if loc and str(loc[0]) not in names:
                names.append(str(loc[0]))
        return names


class FieldValidationError(ModelValidationError):
    """Exception raised when a single field value fails its validator."""

    pass


class SerializationError(SchemaClassError):
    """Exception raised for serialization errors."""

    pass


__all__ = [
    "SchemaClassError",
    "DeclarationError",
    "CircularReferenceError",
    "ModelValidationError",
    "FieldValidationError",
    "SerializationError",
]
