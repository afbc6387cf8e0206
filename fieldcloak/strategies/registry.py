"""Process-wide registry of built-in strategies, keyed by metadata type."""

import logging
import threading
from typing import Callable, Optional

from ..core.exceptions import UnresolvableStrategyError
from .base import IStrategy

logger = logging.getLogger(__name__)


def _default_strategies() -> dict[type, IStrategy]:
    from ..core import metadata
    from . import builtin

    return {
        metadata.SensitiveChineseName: builtin.ChineseNameStrategy(),
        metadata.SensitivePhone: builtin.PhoneStrategy(),
        metadata.SensitiveEmail: builtin.EmailStrategy(),
        metadata.SensitiveCardId: builtin.CardIdStrategy(),
        metadata.SensitiveBankCard: builtin.BankCardStrategy(),
        metadata.SensitivePassword: builtin.PasswordStrategy(),
    }


class BuiltInStrategyRegistry:
    """Maps built-in metadata types to their strategy instances.

    Populated once on first use under a lock, read-only afterwards. Built-in
    strategies are stateless, so a single instance per metadata type is shared
    by all traversals.

    Example:
        >>> registry = get_builtin_registry()
        >>> registry.resolve(SensitivePhone).mask("13812345678", RunContext())
        '138****5678'
    """

    def __init__(self, loader: Callable[[], dict[type, IStrategy]] = _default_strategies) -> None:
        self._loader = loader
        self._strategies: Optional[dict[type, IStrategy]] = None
        self._lock = threading.Lock()

    def _ensure_loaded(self) -> dict[type, IStrategy]:
        strategies = self._strategies
        if strategies is None:
            with self._lock:
                if self._strategies is None:
                    self._strategies = dict(self._loader())
                    logger.info(f"Built-in strategy registry loaded with {len(self._strategies)} entries")
                strategies = self._strategies
        return strategies

    def resolve(self, metadata_type: type) -> IStrategy:
        """Return the built-in strategy for ``metadata_type``.

        Raises:
            UnresolvableStrategyError: If no built-in is registered for the type
        """
        strategy = self._ensure_loaded().get(metadata_type)
        if strategy is None:
            error = UnresolvableStrategyError(
                f"No built-in strategy registered for {metadata_type.__qualname__}",
                referenced_type=metadata_type.__qualname__,
            )
            error.add_recovery_suggestion(
                "Register the metadata type with register_builtin() before first use"
            )
            raise error
        return strategy

    def contains(self, metadata_type: type) -> bool:
        return metadata_type in self._ensure_loaded()

    def register(self, metadata_type: type, strategy: IStrategy) -> None:
        """Add a built-in; meant for start-up, before traversals run."""
        with self._lock:
            strategies = dict(self._strategies if self._strategies is not None else self._loader())
            strategies[metadata_type] = strategy
            self._strategies = strategies
        logger.info(f"Registered built-in strategy {strategy!r} for {metadata_type.__qualname__}")

    def __len__(self) -> int:
        return len(self._ensure_loaded())


_registry = BuiltInStrategyRegistry()


def get_builtin_registry() -> BuiltInStrategyRegistry:
    return _registry


def register_builtin(metadata_type: type, strategy: IStrategy) -> None:
    """Register a strategy for a custom ``@sensitive_strategy(BUILT_IN)`` metadata type."""
    _registry.register(metadata_type, strategy)
