"""
Define models with declared, inheritable and self-validating fields.

Fields are declared on the class body as required, optional or as
references to other models. The field declarations of a class and its
ancestors are merged into the class's metadata, from which a structural
validator is compiled. Instances parse nested plain data into nested
models, and convert back to plain data.
"""

from ._utils import Undefined, UndefinedType  # noqa
from .compiler import ModelValidator, get_validator  # noqa
from .exceptions import *  # noqa
from .fields import (  # noqa
    Field,
    FieldDeclaration,
    Reference,
    declare,
    optional,
    reference,
    required,
)
from .metadata import get_metadata  # noqa
from .model import Model, ModelMeta, is_set  # noqa
from .schemas import FieldSchema, SchemaFactory, ValidationResult, schemas  # noqa
from .serializers import serialize, to_json, to_portable  # noqa

__version__ = "0.1.0"
