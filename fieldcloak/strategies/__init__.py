"""Masking strategies and applicability conditions."""

from .base import AlwaysApply, ICondition, IStrategy, NeverApply
from .builtin import (
    BankCardStrategy,
    CardIdStrategy,
    ChineseNameStrategy,
    EmailStrategy,
    HashStrategy,
    PartialMaskStrategy,
    PasswordStrategy,
    PhoneStrategy,
    RedactStrategy,
)
from .registry import BuiltInStrategyRegistry, get_builtin_registry, register_builtin

__all__ = [
    "IStrategy",
    "ICondition",
    "AlwaysApply",
    "NeverApply",
    "PartialMaskStrategy",
    "ChineseNameStrategy",
    "PhoneStrategy",
    "EmailStrategy",
    "CardIdStrategy",
    "BankCardStrategy",
    "PasswordStrategy",
    "RedactStrategy",
    "HashStrategy",
    "BuiltInStrategyRegistry",
    "get_builtin_registry",
    "register_builtin",
]
