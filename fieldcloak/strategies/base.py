"""Strategy and condition interfaces."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..core.context import RunContext


class IStrategy(ABC):
    """A masking strategy for a single scalar value.

    Implementations must be constructible without arguments to be referenced
    by class from field metadata, unless a factory is registered for them.

    Example:
        >>> class UpperStrategy(IStrategy):
        ...     def mask(self, value, context):
        ...         return value.upper() if isinstance(value, str) else value
    """

    @abstractmethod
    def mask(self, value: Any, context: "RunContext") -> Any:
        """Return the masked replacement for ``value``.

        Args:
            value: Original scalar value, possibly ``None``
            context: Run context positioned on the field being masked

        Returns:
            Replacement value, normally of the same type as ``value``
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class ICondition(ABC):
    """Decides whether the resolved strategy applies to the field in flight."""

    @abstractmethod
    def is_applicable(self, context: "RunContext") -> bool:
        """Return True when masking should be applied.

        ``context.current_object`` is the instance owning the field, so sibling
        fields can be read with ``context.get_field_value(name)``.
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class AlwaysApply(ICondition):
    def is_applicable(self, context: "RunContext") -> bool:
        return True


class NeverApply(ICondition):
    def is_applicable(self, context: "RunContext") -> bool:
        return False
