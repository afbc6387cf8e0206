"""Structural classification of types for the traversal engine.

All functions here are pure and stateless, so they can be called concurrently
from any number of traversals.
"""

import collections.abc
import dataclasses
import inspect
import types
import typing
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional, get_args, get_origin


class TypeShape(Enum):
    """Structural categories a field or value can fall into."""

    SCALAR = "scalar"
    ARRAY = "array"
    COLLECTION = "collection"
    MAPPING = "mapping"
    COMPOSITE = "composite"


_NONE_TYPE = type(None)

# Closed list of leaf types: masked directly, never recursed into. Subclasses
# count too. The top type and class literals are matched exactly, see is_scalar.
SCALAR_TYPES: tuple[type, ...] = (
    str,
    bytes,
    bool,
    int,
    float,
    complex,
    Decimal,
    _NONE_TYPE,
)
TOP_TYPES: tuple[type, ...] = (object, type)


def unwrap_hint(hint: Any) -> Any:
    """Strip ``Annotated`` and single-member ``Optional`` wrappers from a hint."""
    while True:
        origin = get_origin(hint)
        if origin is Annotated:
            hint = get_args(hint)[0]
            continue
        if origin is typing.Union or isinstance(hint, types.UnionType):
            members = [arg for arg in get_args(hint) if arg is not _NONE_TYPE]
            if len(members) == 1:
                hint = members[0]
                continue
        return hint


def runtime_class(hint: Any) -> Optional[type]:
    """Map a (possibly generic) type hint to the class it denotes, if any."""
    hint = unwrap_hint(hint)
    if hint is Any:
        return object
    origin = get_origin(hint)
    if origin is not None:
        return origin if isinstance(origin, type) else None
    if isinstance(hint, type):
        return hint
    return None


def is_scalar(cls: type) -> bool:
    """Return True for the closed set of leaf types and their subclasses.

    ``object`` and ``type`` only match exactly; every other entry also matches
    subclasses, so ``IntEnum`` members and ``str`` enums count as scalars.
    """
    if cls in TOP_TYPES:
        return True
    return issubclass(cls, SCALAR_TYPES)


def is_array(cls: type) -> bool:
    return issubclass(cls, list)


def is_mapping(cls: type) -> bool:
    return issubclass(cls, collections.abc.Mapping)


def is_collection(cls: type) -> bool:
    """Iterable, non-string, non-mapping containers other than ``list``."""
    return (
        issubclass(cls, collections.abc.Iterable)
        and not is_scalar(cls)
        and not is_array(cls)
        and not is_mapping(cls)
    )


def is_enum(cls: type) -> bool:
    return issubclass(cls, Enum)


def is_abstract(cls: type) -> bool:
    return inspect.isabstract(cls) or bool(getattr(cls, "_is_protocol", False))


def is_bean(cls: Optional[type]) -> bool:
    """Whether fields can be discovered on ``cls`` and walked.

    Abstract classes, protocols, enumerations and metadata marker classes are
    never treated as traversal targets.
    """
    if cls is None or not isinstance(cls, type):
        return False
    if classify_class(cls) is not TypeShape.COMPOSITE:
        return False
    if is_abstract(cls) or is_enum(cls):
        return False
    if getattr(cls, "__fieldcloak_marker__", False):
        return False
    return dataclasses.is_dataclass(cls) or bool(_own_annotations(cls))


def _own_annotations(cls: type) -> dict[str, Any]:
    annotations: dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        annotations.update(klass.__dict__.get("__annotations__", {}))
    return annotations


def classify_class(cls: type) -> TypeShape:
    """Classify a concrete runtime class."""
    if is_scalar(cls):
        return TypeShape.SCALAR
    if is_array(cls):
        return TypeShape.ARRAY
    if is_mapping(cls):
        return TypeShape.MAPPING
    if is_collection(cls):
        return TypeShape.COLLECTION
    return TypeShape.COMPOSITE


def classify(hint: Any) -> TypeShape:
    """Classify a declared type hint.

    Hints that do not denote a single class (unions of several types, type
    variables, unresolved forward references) classify as ``COMPOSITE``; the
    traversal engine then dispatches on the runtime value instead.
    """
    cls = runtime_class(hint)
    if cls is None:
        return TypeShape.COMPOSITE
    return classify_class(cls)


def classify_value(value: Any) -> TypeShape:
    """Classify a runtime value by its concrete class."""
    return classify_class(type(value))
