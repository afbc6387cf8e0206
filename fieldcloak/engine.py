"""DesensitizeEngine - high-level API for masking object graphs."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, Optional, TypeVar

from fieldcloak.core.config import DesensitizeConfig, get_config
from fieldcloak.core.context import RunContext
from fieldcloak.core.exceptions import FieldCloakError, NullArgumentError, wrap_error
from fieldcloak.core.resolver import MetadataResolver
from fieldcloak.masking.renderer import ValueContext
from fieldcloak.masking.traversal import TraversalEngine

if TYPE_CHECKING:
    from fieldcloak.engine_builder import DesensitizeEngineBuilder

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class MaskResult(Generic[T]):
    """Result of a masking call.

    ``errors`` lists the fields skipped in non-strict mode; it is always empty
    in strict mode, where any failure raises instead.
    """

    value: T
    errors: list[FieldCloakError] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.errors


class DesensitizeEngine:
    """Produces masked copies and masked JSON renderings of object graphs.

    The original object is never modified. Every call creates its own
    :class:`RunContext`, so one engine can be shared between threads.

    Examples:
        # Simple usage with defaults
        engine = DesensitizeEngine()
        safe_user = engine.mask_copy(user)
        text = engine.mask_json(user)

        # Advanced configuration
        engine = DesensitizeEngine.builder().with_strict(False).with_json_options(indent=2).build()
    """

    def __init__(
        self,
        config: Optional[DesensitizeConfig] = None,
        resolver: Optional[MetadataResolver] = None,
    ):
        """Initialize the engine.

        Args:
            config: Configuration; defaults to the global one loaded from the environment
            resolver: Metadata resolver; defaults to one using the global
                component factory and built-in registry
        """
        self._config = config or get_config()
        self._resolver = resolver or MetadataResolver()
        self._traversal = TraversalEngine(
            resolver=self._resolver,
            strict=self._config.strict,
            max_depth=self._config.max_depth,
        )
        logger.info(f"DesensitizeEngine initialized with {self._config!r}")

    @classmethod
    def builder(cls) -> "DesensitizeEngineBuilder":
        from fieldcloak.engine_builder import DesensitizeEngineBuilder

        return DesensitizeEngineBuilder()

    @property
    def config(self) -> DesensitizeConfig:
        return self._config

    @property
    def resolver(self) -> MetadataResolver:
        return self._resolver

    def mask_copy(self, obj: T) -> T:
        """Return a masked deep copy of ``obj``.

        Raises:
            NullArgumentError: If ``obj`` is None
            DesensitizationError: If masking fails; ``obj`` is left untouched
        """
        return self.mask_copy_result(obj).value

    def mask_copy_result(self, obj: T) -> MaskResult[T]:
        """Like :meth:`mask_copy`, also reporting fields skipped in non-strict mode."""
        if obj is None:
            raise NullArgumentError("Cannot desensitize None", expected_type="object")

        context = RunContext()
        try:
            copied = self._config.deep_copier.deep_copy(obj)
            copied = self._traversal.walk_value(context, copied)
        except Exception as e:
            logger.error(f"Masked copy of {type(obj).__qualname__} failed: {e}")
            raise wrap_error(e, obj) from e

        if context.errors:
            logger.warning(f"Masked copy of {type(obj).__qualname__} skipped {len(context.errors)} fields")
        return MaskResult(value=copied, errors=list(context.errors))

    def mask_json(self, obj: Any) -> str:
        """Render ``obj`` as text with sensitive values masked.

        ``None`` renders as the renderer's null literal without any traversal.

        Raises:
            DesensitizationError: If rendering or masking fails
        """
        return self.mask_json_result(obj).value

    def mask_json_result(self, obj: Any) -> MaskResult[str]:
        renderer = self._config.renderer
        if obj is None:
            return MaskResult(value=renderer.render(None))

        context = RunContext()

        def interceptor(value_context: ValueContext, value: Any) -> Any:
            if value_context.field is None:
                return value
            return self._traversal.intercept(context, value_context.owner, value_context.field, value)

        try:
            text = renderer.render(obj, interceptor)
        except Exception as e:
            logger.error(f"Masked rendering of {type(obj).__qualname__} failed: {e}")
            raise wrap_error(e, obj) from e

        if context.errors:
            logger.warning(f"Masked rendering of {type(obj).__qualname__} skipped {len(context.errors)} values")
        return MaskResult(value=text, errors=list(context.errors))

    def mask_copy_collection(self, items: Optional[Iterable[Optional[T]]]) -> list[Optional[T]]:
        """Masked copies of every element; ``None`` or empty input gives an empty list.

        ``None`` elements are kept as ``None``.
        """
        if not items:
            return []
        return [self.mask_copy(item) if item is not None else None for item in items]

    def mask_json_collection(self, items: Optional[Iterable[Any]]) -> list[str]:
        """Masked renderings of every element; ``None`` or empty input gives an empty list."""
        if not items:
            return []
        return [self.mask_json(item) for item in items]
