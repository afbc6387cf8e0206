"""JSON rendering with per-value interception.

The renderer reads the object graph and never writes to it; masking on the
text path happens only in the values handed to :func:`json.dumps`.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from ..core.classifier import TypeShape, classify_value, is_bean
from ..core.exceptions import UnsupportedShapeError
from ..core.fields import FieldDescriptor, fields_of

logger = logging.getLogger(__name__)

JSON_NULL = "null"


@dataclass(frozen=True)
class ValueContext:
    """Where a scalar value being written comes from.

    Attributes:
        owner: Composite instance holding the originating field, if any
        field: Originating field; elements of a list or collection field
            report that field
    """

    owner: Any = None
    field: Optional[FieldDescriptor] = None


ValueInterceptor = Callable[[ValueContext, Any], Any]


def _identity(value_context: ValueContext, value: Any) -> Any:
    return value


@runtime_checkable
class Renderer(Protocol):
    """Renders an object graph to text, offering every scalar to an interceptor."""

    def render(self, obj: Any, interceptor: Optional[ValueInterceptor] = None) -> str: ...


def json_default(value: Any) -> Any:
    """Fallback conversion for values :mod:`json` cannot encode natively."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, (set, frozenset)):
        return list(value)
    if isinstance(value, type):
        return value.__qualname__
    return str(value)


class JsonRenderer:
    """Default text collaborator: composites render as JSON objects of their fields.

    Lists, tuples, sets and other collections render as arrays, mappings as
    objects with string keys. Scalars that belong to a composite field are
    passed to the interceptor together with that field before encoding.
    """

    def __init__(self, indent: Optional[int] = None, ensure_ascii: bool = False, sort_keys: bool = False):
        self.indent = indent
        self.ensure_ascii = ensure_ascii
        self.sort_keys = sort_keys

    def render(self, obj: Any, interceptor: Optional[ValueInterceptor] = None) -> str:
        if obj is None:
            return JSON_NULL
        payload = self._convert(obj, ValueContext(), interceptor or _identity, set())
        return json.dumps(
            payload,
            indent=self.indent,
            ensure_ascii=self.ensure_ascii,
            sort_keys=self.sort_keys,
            default=json_default,
        )

    def _convert(self, value: Any, origin: ValueContext, interceptor: ValueInterceptor, active: set[int]) -> Any:
        shape = classify_value(value)
        if shape is TypeShape.SCALAR:
            if origin.field is None:
                return value
            return interceptor(origin, value)
        if shape in (TypeShape.ARRAY, TypeShape.COLLECTION):
            return [self._convert(element, origin, interceptor, active) for element in value]
        if shape is TypeShape.MAPPING:
            return {
                str(key): self._convert(item, ValueContext(), interceptor, active)
                for key, item in value.items()
            }
        return self._convert_composite(value, interceptor, active)

    def _convert_composite(self, value: Any, interceptor: ValueInterceptor, active: set[int]) -> Any:
        fields = fields_of(type(value))
        if not fields and not is_bean(type(value)):
            return value

        if id(value) in active:
            raise UnsupportedShapeError(
                f"Circular reference through {type(value).__qualname__} cannot be rendered",
                shape=TypeShape.COMPOSITE.value,
            )
        active.add(id(value))
        try:
            rendered: dict[str, Any] = {}
            for descriptor in fields:
                item = descriptor.get(value)
                rendered[descriptor.name] = self._convert(
                    item, ValueContext(owner=value, field=descriptor), interceptor, active
                )
            return rendered
        finally:
            active.discard(id(value))

    def __repr__(self) -> str:
        return f"JsonRenderer(indent={self.indent}, ensure_ascii={self.ensure_ascii})"
