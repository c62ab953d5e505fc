"""Resolution of the inheritance-merged field metadata of model classes."""

import logging
import threading
import typing
from types import MappingProxyType

if typing.TYPE_CHECKING:
    from .fields import FieldDeclaration

logger = logging.getLogger(__name__)

_VT = typing.TypeVar("_VT")

Metadata = typing.Mapping[str, "FieldDeclaration"]
"""Field name to the declaration that wins for a class."""

DECLARATIONS_ATTR = "__declarations__"


class ClassCache(typing.Generic[_VT]):
    """
    Write-once cache of per-class values, keyed by class identity.

    Entries are never invalidated or freed, they live as long as the
    process. Concurrent misses may compute a value twice, but only the
    first stored value is ever returned.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._store: typing.Dict[type, _VT] = {}
        self._lock = threading.RLock()

    def __contains__(self, cls: type) -> bool:
        return cls in self._store

    def __len__(self) -> int:
        return len(self._store)

    def __iter__(self) -> typing.Iterator[type]:
        with self._lock:
            return iter(list(self._store.keys()))

    def get(self, cls: type, default: typing.Optional[_VT] = None) -> typing.Optional[_VT]:
        return self._store.get(cls, default)

    def get_or_compute(self, cls: type, compute: typing.Callable[[type], _VT]) -> _VT:
        """
        Return the cached value for `cls`, computing and storing it on a miss.

        :param cls: The class to look up.
        :param compute: Called with `cls` to produce the value on a miss.
        """
        try:
            return self._store[cls]
        except KeyError:
            pass

        value = compute(cls)
        with self._lock:
            return self._store.setdefault(cls, value)


_metadata_cache: ClassCache[Metadata] = ClassCache("metadata")


def is_model_class(obj: typing.Any) -> bool:
    """Check if an object is a class that carries field declarations."""
    return isinstance(obj, type) and isinstance(
        getattr(obj, DECLARATIONS_ATTR, None), dict
    )


def own_declarations(cls: type) -> typing.Dict[str, "FieldDeclaration"]:
    """Return the declarations made on the class body itself, excluding inherited ones."""
    return vars(cls).get(DECLARATIONS_ATTR, {})


def model_ancestors(cls: type) -> typing.List[type]:
    """Return the model classes in the hierarchy of `cls`, root first and `cls` last."""
    return [base for base in reversed(cls.__mro__) if DECLARATIONS_ATTR in vars(base)]


def resolve_metadata(cls: type) -> Metadata:
    """
    Merge the declarations of `cls` and its ancestors.

    Ancestors are overlaid root to leaf. A redeclared field takes the
    descendant's declaration but keeps the position of its first appearance.

    :param cls: The model class.
    :return: A read-only mapping of field name to declaration.
    """
    merged: typing.Dict[str, "FieldDeclaration"] = {}
    for ancestor in model_ancestors(cls):
        merged.update(own_declarations(ancestor))

    logger.debug("Resolved metadata for %s: %s", cls.__qualname__, list(merged))
    return MappingProxyType(merged)


def get_metadata(cls: type) -> Metadata:
    """Return the resolved metadata of a model class, resolving it once."""
    return _metadata_cache.get_or_compute(cls, resolve_metadata)


def is_resolved(cls: type) -> bool:
    """Check if the metadata of `cls`, or of any of its subclasses, has been resolved."""
    return any(issubclass(resolved, cls) for resolved in _metadata_cache)
