"""Resolution of field metadata into a (strategy, condition) pair."""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..strategies.base import ICondition, IStrategy
from ..strategies.registry import BuiltInStrategyRegistry, get_builtin_registry
from .exceptions import ResolutionError, create_resolution_error
from .fields import FieldDescriptor
from .metadata import (
    BUILT_IN,
    condition_reference,
    is_ignore,
    is_sensitive,
    metadata_type,
    strategy_reference,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one field's metadata."""

    strategy: Optional[IStrategy] = None
    condition: Optional[ICondition] = None
    skip: bool = False

    @property
    def masks(self) -> bool:
        return self.strategy is not None


NO_MASKING = Resolution()
SKIP = Resolution(skip=True)


class ComponentFactory:
    """Creates strategy and condition instances from metadata references.

    A reference may be a ready-made instance (used as is), a class with a
    registered factory, or a class constructible without arguments.
    """

    def __init__(self) -> None:
        self._factories: dict[type, Callable[[], Any]] = {}
        self._lock = threading.Lock()

    def register(self, cls: type, factory: Callable[[], Any]) -> None:
        with self._lock:
            self._factories = {**self._factories, cls: factory}
        logger.debug(f"Registered factory for {cls.__qualname__}")

    def copy(self) -> "ComponentFactory":
        clone = ComponentFactory()
        clone._factories = dict(self._factories)
        return clone

    def unregister(self, cls: type) -> None:
        with self._lock:
            self._factories = {k: v for k, v in self._factories.items() if k is not cls}

    def create(self, reference: Any, kind: str, capability: str, descriptor: Optional[FieldDescriptor] = None) -> Any:
        """Instantiate ``reference`` and check it provides ``capability``.

        Raises:
            UnresolvableStrategyError / UnresolvableConditionError
        """
        owner = descriptor.owner if descriptor is not None else None
        field_name = descriptor.name if descriptor is not None else None

        if not isinstance(reference, type):
            instance = reference
        else:
            factory = self._factories.get(reference, reference)
            try:
                instance = factory()
            except Exception as e:
                raise create_resolution_error(kind, reference, owner, field_name, e) from e

        if not callable(getattr(instance, capability, None)):
            raise create_resolution_error(
                kind,
                reference,
                owner,
                field_name,
                TypeError(f"{type(instance).__qualname__} has no {capability}() method"),
            )
        return instance


_factory = ComponentFactory()


def get_component_factory() -> ComponentFactory:
    return _factory


def register_factory(cls: type, factory: Callable[[], Any]) -> None:
    """Register how to build a strategy/condition class that needs arguments."""
    _factory.register(cls, factory)


class MetadataResolver:
    """Resolves the winning strategy and condition for a field.

    Precedence, first match wins:

    1. a skip item (``SensitiveIgnore``) means no masking, nothing else is read;
    2. a ``Sensitive`` item supplies strategy and condition explicitly;
    3. otherwise the remaining items are scanned in declaration order; the
       first strategy reference and the first condition reference found are
       used, independently of each other. ``BUILT_IN`` references are looked
       up in the built-in registry by the item's own type.

    Policy items registered for the field go through the same steps, but only
    when the declared metadata yields neither a strategy nor a skip.
    """

    def __init__(
        self,
        factory: Optional[ComponentFactory] = None,
        builtins: Optional[BuiltInStrategyRegistry] = None,
    ) -> None:
        self.factory = factory or get_component_factory()
        self.builtins = builtins or get_builtin_registry()

    def resolve(self, descriptor: FieldDescriptor) -> Resolution:
        resolution = self._resolve_items(descriptor.metadata, descriptor)
        if descriptor.policy and not (resolution.skip or resolution.masks):
            resolution = self._resolve_items(descriptor.policy, descriptor)
        return resolution

    def _resolve_items(self, metadata: tuple[Any, ...], descriptor: FieldDescriptor) -> Resolution:
        if not metadata:
            return NO_MASKING
        if any(is_ignore(item) for item in metadata):
            return SKIP

        for item in metadata:
            if is_sensitive(item):
                condition = self._condition(item.condition, descriptor) if item.condition is not None else None
                strategy = self._strategy(item.strategy, item, descriptor)
                return Resolution(strategy=strategy, condition=condition)

        strategy: Optional[IStrategy] = None
        condition: Optional[ICondition] = None
        for item in metadata:
            if strategy is None:
                reference = strategy_reference(item)
                if reference is not None:
                    strategy = self._strategy(reference, item, descriptor)
            if condition is None:
                reference = condition_reference(item)
                if reference is not None:
                    condition = self._condition(reference, descriptor)
            if strategy is not None and condition is not None:
                break

        return Resolution(strategy=strategy, condition=condition)

    def _strategy(self, reference: Any, item: Any, descriptor: FieldDescriptor) -> IStrategy:
        if reference is BUILT_IN:
            try:
                return self.builtins.resolve(metadata_type(item))
            except ResolutionError as e:
                e.add_context("owner", descriptor.owner.__qualname__)
                e.add_context("field_name", descriptor.name)
                raise
        strategy: IStrategy = self.factory.create(reference, "strategy", "mask", descriptor)
        return strategy

    def _condition(self, reference: Any, descriptor: FieldDescriptor) -> ICondition:
        condition: ICondition = self.factory.create(reference, "condition", "is_applicable", descriptor)
        return condition
