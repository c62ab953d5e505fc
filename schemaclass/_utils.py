import sys
import typing
import collections.abc


class UndefinedType:
    """
    Class to represent a missing/undefined value.

    Unlike `None`, which is a legitimate field value, `Undefined` marks
    a field or key that holds no value at all.
    """

    _instance: typing.Optional["UndefinedType"] = None

    def __new__(cls) -> "UndefinedType":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init_subclass__(cls):
        raise TypeError("UndefinedType cannot be subclassed.")

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Undefined"

    def __copy__(self) -> "UndefinedType":
        return self

    def __deepcopy__(self, memo: typing.Any) -> "UndefinedType":
        return self

    def __reduce__(self) -> str:
        return "Undefined"


Undefined = UndefinedType()


def is_concrete_type(o: typing.Any, /) -> bool:
    """Check if an object is a concrete type."""
    if isinstance(o, typing._SpecialForm):
        return False
    return isinstance(o, type)


def is_callable_type(o: typing.Any, /) -> bool:
    """Check if an annotation denotes a callable, e.g `Callable[[int], str]`."""
    if o is typing.Callable or o is collections.abc.Callable:
        return True
    return typing.get_origin(o) is collections.abc.Callable


def literal_values(o: typing.Any, /) -> typing.Optional[typing.Tuple[typing.Any, ...]]:
    """Return the values of a `Literal[...]` annotation, or None for anything else."""
    if typing.get_origin(o) is typing.Literal:
        return typing.get_args(o)
    return None


def resolve_forward_ref(
    annotation: typing.Any,
    module_name: str,
) -> typing.Any:
    """
    Look up a string (or `ForwardRef`) annotation in the globals of the defining module.

    Only names already bound at the time of the call resolve. Anything else
    is returned untouched.

    :param annotation: The annotation to resolve.
    :param module_name: Name of the module the annotation was written in.
    :return: The resolved object or the original annotation.
    """
    if isinstance(annotation, typing.ForwardRef):
        annotation = annotation.__forward_arg__
    if not isinstance(annotation, str):
        return annotation

    module = sys.modules.get(module_name)
    if module is None:
        return annotation
    return vars(module).get(annotation.strip(), annotation)


def is_sequence(value: typing.Any, /) -> bool:
    """Check if a value is an ordered, non-string sequence."""
    return isinstance(value, (list, tuple))
