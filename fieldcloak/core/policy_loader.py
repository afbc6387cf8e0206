"""Field policy files: attach masking metadata to classes from YAML.

Useful for classes that cannot carry annotations (third-party models,
generated code). A policy file maps a class's dotted import path to its
fields::

    version: "1.0"
    extends: base_policy.yaml        # optional, relative to this file
    classes:
      myapp.models.User:
        phone:
          builtin: phone
        email:
          builtin: email
          condition: myapp.masking.ExternalViewer
        api_token:
          strategy: fieldcloak.strategies.RedactStrategy
        internal_id:
          ignore: true

Entries with a ``strategy``, or a ``builtin`` combined with a ``condition``,
become primary ``Sensitive`` items; a bare ``builtin`` becomes the matching
built-in metadata item. Policy items are appended after the metadata declared
on the class itself.
"""

import importlib
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..strategies.registry import get_builtin_registry
from .exceptions import PolicyError
from .fields import FieldDescriptorCache, get_field_cache
from .metadata import (
    Sensitive,
    SensitiveBankCard,
    SensitiveCardId,
    SensitiveChineseName,
    SensitiveEmail,
    SensitiveIgnore,
    SensitivePassword,
    SensitivePhone,
)

logger = logging.getLogger(__name__)

BUILTIN_METADATA: dict[str, type] = {
    "chinese_name": SensitiveChineseName,
    "phone": SensitivePhone,
    "email": SensitiveEmail,
    "card_id": SensitiveCardId,
    "bank_card": SensitiveBankCard,
    "password": SensitivePassword,
}


class FieldPolicyConfig(BaseModel):
    """Pydantic model for one field's policy entry."""

    model_config = ConfigDict(extra="forbid")

    strategy: Optional[str] = Field(None, description="Dotted path of a strategy class")
    condition: Optional[str] = Field(None, description="Dotted path of a condition class")
    builtin: Optional[str] = Field(None, description="Name of a built-in strategy")
    ignore: bool = Field(False, description="Never mask this field")

    @field_validator("builtin")
    @classmethod
    def validate_builtin(cls, v: Any) -> Any:
        """Validate the built-in name is known."""
        if v is not None and v not in BUILTIN_METADATA:
            raise ValueError(
                f"Unknown builtin '{v}'. Valid builtins: {sorted(BUILTIN_METADATA)}"
            )
        return v

    @model_validator(mode="after")
    def validate_combination(self) -> "FieldPolicyConfig":
        """Exactly one of ignore, strategy or builtin must be given."""
        chosen = [name for name in ("ignore", "strategy", "builtin") if getattr(self, name)]
        if len(chosen) != 1:
            raise ValueError(
                f"Field policy needs exactly one of ignore/strategy/builtin, got {chosen or 'none'}"
            )
        if self.ignore and self.condition:
            raise ValueError("An ignored field cannot have a condition")
        return self


class PolicyFileSchema(BaseModel):
    """Pydantic model for a complete field policy file."""

    model_config = ConfigDict(extra="forbid")

    version: str = Field("1.0", description="Policy file format version")
    extends: Optional[str] = Field(None, description="Base policy file to inherit from")
    classes: dict[str, dict[str, FieldPolicyConfig]] = Field(default_factory=dict)

    @field_validator("version", mode="before")
    @classmethod
    def validate_version(cls, v: Any) -> Any:
        """Validate version format."""
        if not re.match(r"^\d+\.\d+(\.\d+)?$", str(v)):
            raise ValueError(f"Version must follow format 'x.y' or 'x.y.z', got '{v}'")
        return str(v)


@dataclass(frozen=True)
class FieldPolicy:
    """Resolved policy for one field of one class."""

    owner: type
    field_name: str
    strategy: Any = None
    condition: Any = None
    skip: bool = False
    builtin: Optional[type] = None

    def to_metadata(self) -> tuple[Any, ...]:
        if self.skip:
            return (SensitiveIgnore(),)
        if self.builtin is not None and self.condition is None:
            return (self.builtin(),)
        strategy = self.strategy
        if self.builtin is not None:
            strategy = get_builtin_registry().resolve(self.builtin)
        return (Sensitive(strategy=strategy, condition=self.condition),)


@dataclass
class FieldPolicySet:
    """All field policies loaded from one file (and its bases)."""

    policies: list[FieldPolicy] = field(default_factory=list)
    sources: list[Path] = field(default_factory=list)

    def apply(self, cache: Optional[FieldDescriptorCache] = None) -> None:
        """Register every policy with the field descriptor cache."""
        cache = cache or get_field_cache()
        for policy in self.policies:
            cache.register_field_policy(policy.owner, policy.field_name, *policy.to_metadata())
        logger.info(f"Applied {len(self.policies)} field policies from {[str(s) for s in self.sources]}")

    def __len__(self) -> int:
        return len(self.policies)


def import_object(dotted_path: str) -> Any:
    """Import ``package.module.Name`` (nested attributes allowed)."""
    parts = dotted_path.split(".")
    for split in range(len(parts) - 1, 0, -1):
        module_name = ".".join(parts[:split])
        try:
            target: Any = importlib.import_module(module_name)
        except ModuleNotFoundError as e:
            # Only a missing candidate (or parent package) means "try a shorter path".
            if e.name and (module_name == e.name or module_name.startswith(f"{e.name}.")):
                continue
            raise PolicyError(f"Cannot import '{dotted_path}': {e}", context={"module": module_name}) from e
        except ImportError as e:
            raise PolicyError(f"Cannot import '{dotted_path}': {e}", context={"module": module_name}) from e
        try:
            for attr in parts[split:]:
                target = getattr(target, attr)
        except AttributeError as e:
            raise PolicyError(f"Cannot resolve '{dotted_path}': {e}") from e
        return target
    raise PolicyError(f"Cannot import '{dotted_path}'")


class FieldPolicyLoader:
    """Loads field policy files with ``extends`` inheritance.

    A child file's entry for a field replaces the base entry for that field;
    other fields are inherited unchanged.
    """

    def __init__(self, base_path: Optional[Path] = None):
        self.base_path = base_path or Path.cwd()

    def load_file(self, policy_path: Union[str, Path]) -> FieldPolicySet:
        """Load a policy file.

        Raises:
            PolicyError: If the file is missing, malformed, inherits circularly
                or references something that cannot be imported
        """
        policy_path = Path(policy_path)
        if not policy_path.is_absolute():
            policy_path = self.base_path / policy_path

        schema, sources = self._load_schema(policy_path, [])
        try:
            policies = self._build(schema)
        except PolicyError as e:
            e.add_context("policy_file", str(policy_path))
            raise
        return FieldPolicySet(policies=policies, sources=sources)

    def load_dict(self, data: dict[str, Any]) -> FieldPolicySet:
        """Build policies from an already-parsed mapping (``extends`` is not allowed)."""
        try:
            schema = PolicyFileSchema(**data)
        except ValidationError as e:
            raise PolicyError(f"Schema validation failed: {e}") from e
        if schema.extends:
            raise PolicyError("'extends' is only supported when loading from a file")
        return FieldPolicySet(policies=self._build(schema))

    def _load_schema(self, policy_path: Path, chain: list[Path]) -> tuple[PolicyFileSchema, list[Path]]:
        resolved = policy_path.resolve()
        if resolved in chain:
            chain_str = " -> ".join(str(p) for p in chain + [resolved])
            raise PolicyError(f"Circular inheritance detected: {chain_str}", policy_file=str(policy_path))

        if not policy_path.exists():
            raise PolicyError(f"Policy file not found: {policy_path}", policy_file=str(policy_path))

        try:
            with open(policy_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise PolicyError(f"Invalid YAML in {policy_path}: {e}", policy_file=str(policy_path)) from e

        try:
            schema = PolicyFileSchema(**data)
        except (ValidationError, TypeError) as e:
            raise PolicyError(
                f"Schema validation failed for {policy_path}: {e}", policy_file=str(policy_path)
            ) from e

        if not schema.extends:
            return schema, [resolved]

        base_path = Path(schema.extends)
        if not base_path.is_absolute():
            base_path = policy_path.parent / base_path
        base_schema, base_sources = self._load_schema(base_path, chain + [resolved])

        merged = {name: dict(fields) for name, fields in base_schema.classes.items()}
        for class_path, fields in schema.classes.items():
            merged.setdefault(class_path, {}).update(fields)
        logger.debug(f"Policy {policy_path} extends {base_path}")
        return schema.model_copy(update={"classes": merged, "extends": None}), base_sources + [resolved]

    def _build(self, schema: PolicyFileSchema) -> list[FieldPolicy]:
        policies: list[FieldPolicy] = []
        for class_path, fields in schema.classes.items():
            owner = import_object(class_path)
            if not isinstance(owner, type):
                raise PolicyError(f"'{class_path}' is not a class")
            for field_name, config in fields.items():
                policies.append(
                    FieldPolicy(
                        owner=owner,
                        field_name=field_name,
                        strategy=import_object(config.strategy) if config.strategy else None,
                        condition=import_object(config.condition) if config.condition else None,
                        skip=config.ignore,
                        builtin=BUILTIN_METADATA[config.builtin] if config.builtin else None,
                    )
                )
        return policies


def load_field_policies(policy_path: Union[str, Path], apply: bool = True) -> FieldPolicySet:
    """Load a policy file and, by default, register it globally."""
    policy_set = FieldPolicyLoader().load_file(policy_path)
    if apply:
        policy_set.apply()
    return policy_set
