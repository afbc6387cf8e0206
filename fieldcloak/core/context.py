"""Per-traversal run context."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from ..strategies.base import ICondition, IStrategy
    from .exceptions import FieldCloakError
    from .fields import FieldDescriptor


@dataclass
class RunContext:
    """Mutable state for one top-level masking call.

    A fresh context is created by every entry point and discarded when it
    returns; it is never shared between calls, so no locking is needed.
    Strategies and conditions receive it to inspect the field being masked and
    its siblings.

    Attributes:
        all_fields: Field descriptors of the composite currently visited
        current_object: Composite instance currently visited
        current_field: Field in flight
        strategy: Strategy resolved for the field in flight
        condition: Condition resolved for the field in flight
        errors: Failures recorded in non-strict mode
        depth: Current composite nesting depth
        visited: Identities of composites already walked in this call
    """

    all_fields: tuple["FieldDescriptor", ...] = ()
    current_object: Any = None
    current_field: Optional["FieldDescriptor"] = None
    strategy: Optional["IStrategy"] = None
    condition: Optional["ICondition"] = None
    errors: list["FieldCloakError"] = field(default_factory=list)
    depth: int = 0
    visited: set[int] = field(default_factory=set)

    @property
    def current_field_name(self) -> Optional[str]:
        return self.current_field.name if self.current_field is not None else None

    @property
    def current_field_value(self) -> Any:
        """Value of the field in flight on the current object."""
        if self.current_field is None or self.current_object is None:
            return None
        return self.current_field.get(self.current_object)

    def get_field_value(self, name: str) -> Any:
        """Value of a sibling field on the current object."""
        if self.current_object is None:
            return None
        return getattr(self.current_object, name, None)

    def reset_field(self) -> None:
        self.current_field = None
        self.strategy = None
        self.condition = None
