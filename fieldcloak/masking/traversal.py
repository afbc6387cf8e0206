"""Recursive traversal engine applying field strategies to an object graph."""

import logging
from collections.abc import MutableMapping
from typing import Any, Optional

from ..core.classifier import TypeShape, classify_value
from ..core.context import RunContext
from ..core.exceptions import (
    DesensitizationError,
    FieldAccessDeniedError,
    FieldCloakError,
    ResolutionError,
    UnsupportedShapeError,
)
from ..core.fields import FieldDescriptor, fields_of
from ..core.resolver import MetadataResolver, Resolution

logger = logging.getLogger(__name__)

# Failures that strict=False turns into a skipped field.
RECOVERABLE_ERRORS = (ResolutionError, FieldAccessDeniedError, UnsupportedShapeError)


class TraversalEngine:
    """Walks composite instances field by field and masks them in place.

    The engine itself is stateless apart from its configuration; all per-call
    state lives in the :class:`RunContext` passed to :meth:`walk`, so one
    engine can serve concurrent calls.

    Fields are processed in declaration order in a single pass, so a field's
    masked value is already written back when a later sibling's condition
    reads it.
    """

    def __init__(
        self,
        resolver: Optional[MetadataResolver] = None,
        strict: bool = True,
        max_depth: int = 64,
    ) -> None:
        self.resolver = resolver or MetadataResolver()
        self.strict = strict
        self.max_depth = max_depth

    def walk(self, context: RunContext, instance: Any, declared_type: Optional[type] = None) -> None:
        """Mask every reachable field of ``instance`` in place.

        Args:
            context: Run context for the current top-level call
            instance: Composite instance (a private copy) to mask
            declared_type: Type whose field list drives the walk; defaults to
                the runtime type of ``instance``
        """
        if instance is None:
            return
        if id(instance) in context.visited:
            return
        if context.depth >= self.max_depth:
            raise DesensitizationError(
                f"Object graph deeper than max_depth={self.max_depth}",
                target_type=type(instance).__qualname__,
            )

        fields = fields_of(declared_type or type(instance))
        context.visited.add(id(instance))
        saved = (
            context.all_fields,
            context.current_object,
            context.current_field,
            context.strategy,
            context.condition,
        )
        context.all_fields = fields
        context.current_object = instance
        context.depth += 1
        try:
            for descriptor in fields:
                try:
                    self._walk_field(context, instance, descriptor)
                except RECOVERABLE_ERRORS as e:
                    self._recover(context, descriptor, e)
        finally:
            context.depth -= 1
            (
                context.all_fields,
                context.current_object,
                context.current_field,
                context.strategy,
                context.condition,
            ) = saved

    def walk_value(self, context: RunContext, value: Any) -> Any:
        """Mask a top-level value of any shape; returns it, or its rebuilt collection.

        Composites are walked in place, lists are masked element-wise in place
        and other collections are rebuilt. Nothing is masked at the top level
        itself since no field metadata applies there.
        """
        return self._mask_element(context, value, applies=False)

    def _recover(self, context: RunContext, descriptor: FieldDescriptor, error: FieldCloakError) -> None:
        if self.strict:
            raise error
        context.errors.append(error)
        logger.warning(f"Skipping field {descriptor.qualified_name}: {error.message}")

    def prepare(self, context: RunContext, instance: Any, descriptor: FieldDescriptor) -> Resolution:
        """Resolve ``descriptor`` and position ``context`` on it."""
        context.reset_field()
        resolution = self.resolver.resolve(descriptor)
        if resolution.skip:
            return resolution
        context.current_object = instance
        context.current_field = descriptor
        context.strategy = resolution.strategy
        context.condition = resolution.condition
        return resolution

    def intercept(self, context: RunContext, owner: Any, descriptor: FieldDescriptor, value: Any) -> Any:
        """Masked replacement for one value read from ``owner.<descriptor>``.

        Used on the text path, where the renderer reads values and nothing is
        written back.
        """
        try:
            resolution = self.prepare(context, owner, descriptor)
        except RECOVERABLE_ERRORS as e:
            self._recover(context, descriptor, e)
            return value
        if resolution.skip or resolution.strategy is None:
            return value
        context.all_fields = fields_of(type(owner))
        return self.mask_value(context, value)

    def _walk_field(self, context: RunContext, instance: Any, descriptor: FieldDescriptor) -> None:
        resolution = self.prepare(context, instance, descriptor)
        if resolution.skip:
            logger.debug(f"Field {descriptor.qualified_name} is ignored")
            return

        value = descriptor.get(instance)
        if value is None:
            return

        shape = descriptor.shape
        if shape is not TypeShape.SCALAR:
            shape = classify_value(value)

        if shape is TypeShape.SCALAR:
            if context.strategy is not None and self.applies(context):
                descriptor.set(instance, self._mask(context, value))
        elif shape is TypeShape.ARRAY:
            self._mask_array(context, value, self.applies(context))
        elif shape is TypeShape.COLLECTION:
            rebuilt = self._mask_collection(context, value, self.applies(context))
            if rebuilt is not value:
                descriptor.set(instance, rebuilt)
        elif shape is TypeShape.MAPPING:
            if context.strategy is not None:
                raise UnsupportedShapeError(
                    f"No masking rule for mapping field {descriptor.qualified_name}",
                    field_name=descriptor.name,
                    shape=shape.value,
                )
            rebuilt = self._mask_mapping(context, value)
            if rebuilt is not value:
                descriptor.set(instance, rebuilt)
        else:
            self.walk(context, value)

    def applies(self, context: RunContext) -> bool:
        """Whether the resolved strategy should be applied to the field in flight."""
        if context.strategy is None:
            return False
        return context.condition is None or bool(context.condition.is_applicable(context))

    def _mask(self, context: RunContext, value: Any) -> Any:
        if value is None:
            return None
        return context.strategy.mask(value, context)  # type: ignore[union-attr]

    def mask_value(self, context: RunContext, value: Any) -> Any:
        """Strategy output for ``value`` if the strategy applies, else ``value``."""
        if not self.applies(context):
            return value
        return self._mask(context, value)

    def _mask_element(self, context: RunContext, element: Any, applies: bool) -> Any:
        if element is None:
            return None
        shape = classify_value(element)
        if shape is TypeShape.SCALAR:
            return self._mask(context, element) if applies else element
        if shape is TypeShape.ARRAY:
            self._mask_array(context, element, applies)
            return element
        if shape is TypeShape.COLLECTION:
            return self._mask_collection(context, element, applies)
        if shape is TypeShape.MAPPING:
            return self._mask_mapping(context, element)
        if shape is TypeShape.COMPOSITE:
            self.walk(context, element)
        return element

    def _mask_array(self, context: RunContext, array: list, applies: bool) -> None:
        for index, element in enumerate(array):
            array[index] = self._mask_element(context, element, applies)

    def _mask_collection(self, context: RunContext, collection: Any, applies: bool) -> Any:
        """Rebuild ``collection`` as the same concrete type with masked elements.

        The source collection is never modified. When nothing could have
        changed (no strategy applied and only scalar elements) it is returned
        as is.
        """
        items = []
        touched = applies
        for element in collection:
            if element is not None and classify_value(element) is not TypeShape.SCALAR:
                touched = True
            items.append(self._mask_element(context, element, applies))
        if not touched:
            return collection
        return rebuild_collection(collection, items)

    def _mask_mapping(self, context: RunContext, mapping: Any) -> Any:
        """Walk the values of ``mapping``; keys and scalar values stay as they are.

        No field strategy reaches into a mapping, but composites held as values
        still carry their own metadata. Mutable mappings are updated in place,
        others are rebuilt as the same type.
        """
        updated = {}
        for key, item in mapping.items():
            masked = self._mask_element(context, item, applies=False)
            if masked is not item:
                updated[key] = masked
        if not updated:
            return mapping
        if isinstance(mapping, MutableMapping):
            mapping.update(updated)
            return mapping
        try:
            return type(mapping)({**mapping, **updated})
        except Exception as e:
            raise UnsupportedShapeError(
                f"Cannot rebuild mapping of type {type(mapping).__qualname__}: {e}",
                shape=TypeShape.MAPPING.value,
            ) from e


def rebuild_collection(source: Any, items: list) -> Any:
    """New instance of ``type(source)`` holding ``items``."""
    cls = type(source)
    try:
        make = getattr(cls, "_make", None)
        if make is not None:
            return make(items)
        return cls(items)
    except Exception as e:
        raise UnsupportedShapeError(
            f"Cannot rebuild collection of type {cls.__qualname__}: {e}",
            shape=TypeShape.COLLECTION.value,
        ) from e
