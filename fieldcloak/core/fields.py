"""Field descriptors and the process-wide descriptor cache."""

import dataclasses
import logging
import threading
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Annotated, Any, ClassVar, Optional, get_args, get_origin

from .classifier import TypeShape, classify, is_bean, unwrap_hint
from .exceptions import FieldAccessDeniedError, ValidationError
from .metadata import METADATA_KEY, is_field_metadata

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class FieldDescriptor:
    """One named, typed slot on a composite type.

    Descriptors are immutable and shared between traversals.

    Attributes:
        owner: Class the field was discovered on
        name: Attribute name
        declared_type: Type hint with ``Annotated``/``Optional`` wrappers removed
        shape: Structural category of ``declared_type``
        metadata: Declarative metadata items in declaration order
        policy: Items registered for the field after class creation; they are
            only consulted when ``metadata`` resolves nothing
    """

    owner: type
    name: str
    declared_type: Any
    shape: TypeShape
    metadata: tuple[Any, ...] = field(default_factory=tuple)
    policy: tuple[Any, ...] = field(default_factory=tuple)

    @property
    def qualified_name(self) -> str:
        return f"{self.owner.__qualname__}.{self.name}"

    def get(self, instance: Any) -> Any:
        """Read the field from ``instance``; a missing attribute reads as ``None``."""
        try:
            return getattr(instance, self.name, None)
        except Exception as e:
            raise FieldAccessDeniedError(
                f"Cannot read field {self.qualified_name}: {e}",
                owner=self.owner.__qualname__,
                field_name=self.name,
                operation="read",
            ) from e

    def set(self, instance: Any, value: Any) -> None:
        """Write ``value`` into ``instance``, bypassing frozen dataclass guards."""
        try:
            if dataclasses.is_dataclass(instance) and instance.__dataclass_params__.frozen:
                object.__setattr__(instance, self.name, value)
            else:
                setattr(instance, self.name, value)
        except Exception as e:
            raise FieldAccessDeniedError(
                f"Cannot write field {self.qualified_name}: {e}",
                owner=self.owner.__qualname__,
                field_name=self.name,
                operation="write",
            ) from e

    def with_policy(self, *items: Any) -> "FieldDescriptor":
        return dataclasses.replace(self, policy=self.policy + tuple(items))


def _as_items(value: Any) -> tuple[Any, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


def _annotated_metadata(hint: Any) -> tuple[Any, ...]:
    """Collect fieldcloak metadata from ``Annotated`` extras, through ``Optional``."""
    items: list[Any] = []
    pending = [hint]
    while pending:
        current = pending.pop(0)
        origin = get_origin(current)
        if origin is Annotated:
            base, *extras = get_args(current)
            items.extend(extra for extra in extras if is_field_metadata(extra))
            pending.append(base)
        elif origin is typing.Union or isinstance(current, types.UnionType):
            pending.extend(arg for arg in get_args(current) if arg is not type(None))
    return tuple(items)


def _resolve_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except Exception as e:
        # Unresolvable forward references fall back to the raw annotations.
        logger.debug(f"Could not resolve type hints for {cls.__qualname__}: {e}")
        hints: dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            hints.update(klass.__dict__.get("__annotations__", {}))
        return hints


def _is_class_var(hint: Any) -> bool:
    return hint is ClassVar or get_origin(hint) is ClassVar


def _make_descriptor(owner: type, name: str, hint: Any, extra: tuple[Any, ...] = ()) -> FieldDescriptor:
    declared = unwrap_hint(hint)
    return FieldDescriptor(
        owner=owner,
        name=name,
        declared_type=declared,
        shape=classify(declared),
        metadata=_annotated_metadata(hint) + extra,
    )


def discover_fields(cls: type) -> tuple[FieldDescriptor, ...]:
    """Build the descriptor list for ``cls`` by introspection (uncached)."""
    if not is_bean(cls):
        return ()

    hints = _resolve_hints(cls)
    descriptors: list[FieldDescriptor] = []

    if dataclasses.is_dataclass(cls):
        for dc_field in dataclasses.fields(cls):
            hint = hints.get(dc_field.name, dc_field.type)
            extra = _as_items(dc_field.metadata.get(METADATA_KEY))
            descriptors.append(_make_descriptor(cls, dc_field.name, hint, extra))
    else:
        for name, hint in hints.items():
            if name.startswith("__") or _is_class_var(hint):
                continue
            descriptors.append(_make_descriptor(cls, name, hint))

    return tuple(descriptors)


class FieldDescriptorCache:
    """Process-wide ``fields_of(cls)`` cache.

    Entries are computed once per class under a lock and are read-only
    afterwards. Explicit registrations (``register_fields`` and
    ``register_field_policy``) invalidate the affected class so the next
    lookup rebuilds it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cache: dict[type, tuple[FieldDescriptor, ...]] = {}
        self._declared: dict[type, dict[str, Any]] = {}
        self._policies: dict[type, dict[str, tuple[Any, ...]]] = {}

    def get(self, cls: type) -> tuple[FieldDescriptor, ...]:
        cached = self._cache.get(cls, _MISSING)
        if cached is not _MISSING:
            return cached  # type: ignore[return-value]

        with self._lock:
            cached = self._cache.get(cls, _MISSING)
            if cached is _MISSING:
                cached = self._build(cls)
                self._cache[cls] = cached
                logger.debug(f"Cached {len(cached)} field descriptors for {cls.__qualname__}")
        return cached  # type: ignore[return-value]

    def _build(self, cls: type) -> tuple[FieldDescriptor, ...]:
        descriptors = list(discover_fields(cls))
        known = {d.name for d in descriptors}

        for klass in reversed(cls.__mro__):
            for name, hint in self._declared.get(klass, {}).items():
                if name not in known:
                    descriptors.append(_make_descriptor(cls, name, hint))
                    known.add(name)

        policies: dict[str, tuple[Any, ...]] = {}
        for klass in reversed(cls.__mro__):
            for name, items in self._policies.get(klass, {}).items():
                policies[name] = policies.get(name, ()) + items

        return tuple(
            d.with_policy(*policies[d.name]) if d.name in policies else d
            for d in descriptors
        )

    def register_fields(self, cls: type, fields: Mapping[str, Any]) -> None:
        """Declare fields for a class that cannot be introspected.

        Args:
            cls: Composite class
            fields: Field name to type hint, in declaration order
        """
        if not isinstance(cls, type):
            raise ValidationError("register_fields expects a class", actual_value=cls)
        with self._lock:
            self._declared.setdefault(cls, {}).update(fields)
            self._invalidate_locked(cls)
        logger.info(f"Registered {len(fields)} explicit fields for {cls.__qualname__}")

    def register_field_policy(self, cls: type, field_name: str, *items: Any) -> None:
        """Attach fallback metadata items to a field.

        Policy items never outrank metadata declared on the class; they apply
        only to fields whose declared metadata resolves no strategy and no skip.
        """
        if not isinstance(cls, type):
            raise ValidationError("register_field_policy expects a class", actual_value=cls)
        unknown = [item for item in items if not is_field_metadata(item)]
        if unknown:
            raise ValidationError(
                f"Not fieldcloak metadata: {unknown!r}", field_name=field_name
            )
        with self._lock:
            policies = self._policies.setdefault(cls, {})
            policies[field_name] = policies.get(field_name, ()) + tuple(items)
            self._invalidate_locked(cls)

    def invalidate(self, cls: Optional[type] = None) -> None:
        with self._lock:
            self._invalidate_locked(cls)

    def _invalidate_locked(self, cls: Optional[type]) -> None:
        if cls is None:
            self._cache.clear()
            return
        # Subclasses inherit registrations, so drop them too.
        for cached in list(self._cache):
            if issubclass(cached, cls):
                del self._cache[cached]

    def clear(self) -> None:
        """Drop cached entries and all registrations (used by tests)."""
        with self._lock:
            self._cache.clear()
            self._declared.clear()
            self._policies.clear()


_field_cache = FieldDescriptorCache()


def get_field_cache() -> FieldDescriptorCache:
    return _field_cache


def fields_of(cls: type) -> tuple[FieldDescriptor, ...]:
    """Ordered field descriptors for ``cls``; empty for non-composite types."""
    return _field_cache.get(cls)


def register_fields(cls: type, fields: Mapping[str, Any]) -> None:
    _field_cache.register_fields(cls, fields)


def register_field_policy(cls: type, field_name: str, *items: Any) -> None:
    _field_cache.register_field_policy(cls, field_name, *items)
