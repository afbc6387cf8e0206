"""Module-level shortcuts backed by a lazily created default engine."""

import threading
from collections.abc import Iterable
from typing import Any, Optional, TypeVar

from fieldcloak.engine import DesensitizeEngine

T = TypeVar("T")

_default_engine: Optional[DesensitizeEngine] = None
_engine_lock = threading.Lock()


def get_default_engine() -> DesensitizeEngine:
    """Engine configured from the environment, created on first use."""
    global _default_engine
    if _default_engine is None:
        with _engine_lock:
            if _default_engine is None:
                _default_engine = DesensitizeEngine()
    return _default_engine


def reset_default_engine() -> None:
    """Forget the default engine (tests, or after changing the environment)."""
    global _default_engine
    with _engine_lock:
        _default_engine = None


def des_copy(obj: T) -> T:
    """Masked deep copy of ``obj``."""
    return get_default_engine().mask_copy(obj)


def des_json(obj: Any) -> str:
    """Masked JSON rendering of ``obj``."""
    return get_default_engine().mask_json(obj)


def des_copy_collection(items: Optional[Iterable[Optional[T]]]) -> list[Optional[T]]:
    return get_default_engine().mask_copy_collection(items)


def des_json_collection(items: Optional[Iterable[Any]]) -> list[str]:
    return get_default_engine().mask_json_collection(items)
