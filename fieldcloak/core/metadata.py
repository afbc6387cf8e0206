"""Declarative field metadata.

Fields opt into masking by carrying metadata items, either as
``typing.Annotated`` extras or through ``dataclasses.field(metadata=...)``::

    @dataclass
    class User:
        name: str
        phone: Annotated[str, SensitivePhone()]
        email: str = field(default="", metadata={"sensitive": SensitiveEmail()})
        token: Annotated[str, Sensitive(strategy=RedactStrategy)]
        internal_id: Annotated[str, SensitiveIgnore()]

Custom metadata types declare what they stand for with the
:func:`sensitive_strategy` and :func:`sensitive_condition` class decorators.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

# Key used in ``dataclasses.field(metadata=...)``.
METADATA_KEY = "sensitive"

_STRATEGY_ATTR = "__sensitive_strategy__"
_CONDITION_ATTR = "__sensitive_condition__"

T = TypeVar("T", bound=type)


class BuiltIn:
    """Strategy reference meaning "use the built-in strategy registered for this metadata type"."""

    def __init__(self) -> None:
        raise TypeError("BuiltIn is a reference marker and cannot be instantiated")


BUILT_IN = BuiltIn


class SensitiveMetadata:
    """Base class for fieldcloak metadata items.

    Subclasses are markers, never traversal targets.
    """

    __fieldcloak_marker__ = True


@dataclass(frozen=True)
class SensitiveIgnore(SensitiveMetadata):
    """Skip masking for the field entirely, whatever else it carries."""


@dataclass(frozen=True)
class Sensitive(SensitiveMetadata):
    """Primary explicit metadata: names a strategy and optionally a condition.

    ``strategy`` and ``condition`` may be classes (instantiated through the
    component factory) or ready-made instances.
    """

    strategy: Any
    condition: Optional[Any] = None


def sensitive_strategy(strategy: Any) -> Callable[[T], T]:
    """Class decorator declaring the strategy a metadata type stands for.

    Pass :data:`BUILT_IN` to look the strategy up in the built-in registry by
    the decorated type.
    """

    def decorate(cls: T) -> T:
        setattr(cls, _STRATEGY_ATTR, strategy)
        cls.__fieldcloak_marker__ = True  # type: ignore[attr-defined]
        return cls

    return decorate


def sensitive_condition(condition: Any) -> Callable[[T], T]:
    """Class decorator declaring the condition a metadata type stands for."""

    def decorate(cls: T) -> T:
        setattr(cls, _CONDITION_ATTR, condition)
        cls.__fieldcloak_marker__ = True  # type: ignore[attr-defined]
        return cls

    return decorate


def metadata_type(item: Any) -> type:
    """Metadata items may be given as instances or as bare classes."""
    return item if isinstance(item, type) else type(item)


def strategy_reference(item: Any) -> Optional[Any]:
    """The strategy reference declared directly on the item's type, if any."""
    return vars(metadata_type(item)).get(_STRATEGY_ATTR)


def condition_reference(item: Any) -> Optional[Any]:
    """The condition reference declared directly on the item's type, if any."""
    return vars(metadata_type(item)).get(_CONDITION_ATTR)


def is_ignore(item: Any) -> bool:
    return issubclass(metadata_type(item), SensitiveIgnore)


def is_sensitive(item: Any) -> bool:
    return isinstance(item, Sensitive)


def is_field_metadata(item: Any) -> bool:
    """Whether ``item`` is something the resolver understands."""
    return (
        is_ignore(item)
        or is_sensitive(item)
        or strategy_reference(item) is not None
        or condition_reference(item) is not None
    )


@sensitive_strategy(BUILT_IN)
@dataclass(frozen=True)
class SensitiveChineseName(SensitiveMetadata):
    """Chinese personal name: keeps the first and last character."""


@sensitive_strategy(BUILT_IN)
@dataclass(frozen=True)
class SensitivePhone(SensitiveMetadata):
    """Mobile phone number: keeps the first 3 and last 4 digits."""


@sensitive_strategy(BUILT_IN)
@dataclass(frozen=True)
class SensitiveEmail(SensitiveMetadata):
    """Email address: keeps the first 3 characters and the domain."""


@sensitive_strategy(BUILT_IN)
@dataclass(frozen=True)
class SensitiveCardId(SensitiveMetadata):
    """Identity card number: keeps the first 6 and last 2 characters."""


@sensitive_strategy(BUILT_IN)
@dataclass(frozen=True)
class SensitiveBankCard(SensitiveMetadata):
    """Bank card number: keeps the first 6 and last 4 digits."""


@sensitive_strategy(BUILT_IN)
@dataclass(frozen=True)
class SensitivePassword(SensitiveMetadata):
    """Password: always replaced by ``None``."""
