import gc

from schemaclass import Model, get_metadata, optional, required
from schemaclass.metadata import ClassCache, model_ancestors


class FirstSchema(Model):
    id: str = required(lambda s: s.string().pattern(r"^[0-9a-f-]{36}$"))
    name: str = optional(lambda s: s.string())


class SecondSchema(FirstSchema):
    pass


class ThirdSchema(SecondSchema):
    name: str = required(lambda s: s.string().min(5).max(40))
    age: int = optional(lambda s: s.integer().min(1).max(199))
    active: bool = optional()


def test_root_model_has_no_metadata() -> None:
    assert list(Model.metadata) == []


def test_metadata_of_declaring_class() -> None:
    assert list(FirstSchema.metadata) == ["id", "name"]


def test_subclass_without_fields_inherits_metadata() -> None:
    assert list(SecondSchema.metadata) == ["id", "name"]


def test_merge_order_root_first() -> None:
    assert list(ThirdSchema.metadata) == ["id", "name", "age", "active"]


def test_redeclared_field_takes_descendant_declaration() -> None:
    first_name = FirstSchema.metadata["name"]
    third_name = ThirdSchema.metadata["name"]

    assert first_name.owner is FirstSchema
    assert first_name.required is False
    assert third_name.owner is ThirdSchema
    assert third_name.required is True
    assert third_name.validator.describe()["rules"] == [
        {"name": "min", "arg": 5},
        {"name": "max", "arg": 40},
    ]
    # Ancestor metadata is not affected by the redeclaration
    assert SecondSchema.metadata["name"] is first_name


def test_ancestors_root_to_leaf() -> None:
    assert model_ancestors(ThirdSchema) == [
        Model,
        FirstSchema,
        SecondSchema,
        ThirdSchema,
    ]


def test_metadata_is_memoized_and_read_only() -> None:
    metadata = get_metadata(ThirdSchema)

    assert get_metadata(ThirdSchema) is metadata
    assert ThirdSchema.metadata is metadata
    try:
        metadata["extra"] = None  # type: ignore[index]
    except TypeError:
        pass
    else:
        raise AssertionError("metadata should be read-only")


def test_multiple_inheritance_follows_mro() -> None:
    class Named(Model):
        name: str = optional()

    class Aged(Model):
        age: int = optional()

    class Person(Named, Aged):
        email: str = optional()

    assert list(Person.metadata) == ["age", "name", "email"]


def test_class_cache_computes_once() -> None:
    calls = []

    def compute(cls: type) -> str:
        calls.append(cls)
        return cls.__name__

    cache: ClassCache[str] = ClassCache("names")
    assert cache.get_or_compute(FirstSchema, compute) == "FirstSchema"
    assert cache.get_or_compute(FirstSchema, compute) == "FirstSchema"
    assert calls == [FirstSchema]
    assert FirstSchema in cache
    assert SecondSchema not in cache


def test_class_cache_keeps_entries_of_unreferenced_classes() -> None:
    cache: ClassCache[str] = ClassCache("names")

    def make_entry() -> None:
        class Temporary(Model):
            pass

        cache.get_or_compute(Temporary, lambda cls: cls.__name__)

    make_entry()
    gc.collect()

    assert len(cache) == 1
    assert [cls.__name__ for cls in cache] == ["Temporary"]
