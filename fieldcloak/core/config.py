"""Runtime configuration for desensitization calls.

Defaults can be overridden from environment variables through
:meth:`DesensitizeConfig.from_environment`; the collaborators (deep copier and
renderer) can only be set programmatically.
"""

import copy
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64


@runtime_checkable
class DeepCopier(Protocol):
    """Produces a structurally independent copy of an object graph."""

    def deep_copy(self, obj: Any) -> Any: ...


class StdDeepCopier:
    """Deep copy through :func:`copy.deepcopy`."""

    def deep_copy(self, obj: Any) -> Any:
        return copy.deepcopy(obj)

    def __repr__(self) -> str:
        return "StdDeepCopier()"


@dataclass
class DesensitizeConfig:
    """Configuration shared by the masking entry points.

    Attributes:
        deep_copier: Collaborator producing the private working copy
        renderer: Collaborator rendering objects to text with value interception;
            defaults to a JsonRenderer built from the json_* options
        strict: Abort the whole call on the first resolution or field-access
            failure (True), or skip the failing field, record the error on the
            run context and continue (False)
        max_depth: Maximum composite nesting depth before the call is aborted
        json_indent: Indentation passed to the default JSON renderer
        json_ensure_ascii: Escape non-ASCII characters in rendered JSON
    """

    deep_copier: Any = field(default_factory=StdDeepCopier)
    renderer: Any = None
    strict: bool = True
    max_depth: int = DEFAULT_MAX_DEPTH
    json_indent: Optional[int] = None
    json_ensure_ascii: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate_max_depth()
        self._validate_json_indent()
        if self.renderer is None:
            from ..masking.renderer import JsonRenderer

            self.renderer = JsonRenderer(indent=self.json_indent, ensure_ascii=self.json_ensure_ascii)
        self._validate_collaborators()

        logger.debug(
            f"DesensitizeConfig initialized: strict={self.strict}, max_depth={self.max_depth}"
        )

    def _validate_collaborators(self) -> None:
        from .exceptions import ConfigurationError

        if not callable(getattr(self.deep_copier, "deep_copy", None)):
            raise ConfigurationError(
                "deep_copier must provide a deep_copy(obj) method",
                config_key="deep_copier",
            )
        if not callable(getattr(self.renderer, "render", None)):
            raise ConfigurationError(
                "renderer must provide a render(obj, interceptor) method",
                config_key="renderer",
            )

    def _validate_max_depth(self) -> None:
        if not isinstance(self.max_depth, int) or self.max_depth <= 0:
            logger.warning(
                f"max_depth must be positive integer, got {self.max_depth}, using {DEFAULT_MAX_DEPTH}"
            )
            self.max_depth = DEFAULT_MAX_DEPTH

    def _validate_json_indent(self) -> None:
        if self.json_indent is not None and (
            not isinstance(self.json_indent, int) or self.json_indent < 0
        ):
            logger.warning(f"json_indent must be a non-negative integer or None, got {self.json_indent}, using None")
            self.json_indent = None

    @classmethod
    def from_environment(cls, **overrides: Any) -> "DesensitizeConfig":
        """Load configuration from environment variables.

        Environment Variables:
            FIELDCLOAK_STRICT: Abort on first failure (true|false)
            FIELDCLOAK_MAX_DEPTH: Maximum nesting depth (positive integer)
            FIELDCLOAK_JSON_INDENT: JSON indentation (non-negative integer)
            FIELDCLOAK_JSON_ENSURE_ASCII: Escape non-ASCII output (true|false)

        Keyword overrides take precedence over the environment.
        """
        values: dict[str, Any] = {
            "strict": cls._get_env_bool("FIELDCLOAK_STRICT", True),
            "max_depth": cls._get_env_int("FIELDCLOAK_MAX_DEPTH", DEFAULT_MAX_DEPTH),
            "json_indent": cls._get_env_int("FIELDCLOAK_JSON_INDENT", None, allow_zero=True),
            "json_ensure_ascii": cls._get_env_bool("FIELDCLOAK_JSON_ENSURE_ASCII", False),
        }
        values.update(overrides)
        config = cls(**values)
        logger.info(f"Loaded configuration from environment: {config!r}")
        return config

    @staticmethod
    def _get_env_bool(key: str, default: bool) -> bool:
        """Only 'true'/'false' (case insensitive) are recognised."""
        value = os.getenv(key)
        if value is None:
            return default

        cleaned_value = value.strip().lower()
        if cleaned_value == "true":
            return True
        elif cleaned_value == "false":
            return False
        else:
            logger.warning(f"Environment variable {key}={value} is not true/false, using default {default}")
            return default

    @staticmethod
    def _get_env_int(key: str, default: Optional[int], allow_zero: bool = False) -> Optional[int]:
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = int(value.strip())
        except ValueError:
            logger.warning(
                f"Environment variable {key}={value} is not a valid integer, using default {default}"
            )
            return default
        if parsed < 0 or (parsed == 0 and not allow_zero):
            logger.warning(f"Environment variable {key}={value} is out of range, using default {default}")
            return default
        return parsed

    def to_dict(self) -> dict[str, Any]:
        return {
            "deep_copier": repr(self.deep_copier),
            "renderer": repr(self.renderer),
            "strict": self.strict,
            "max_depth": self.max_depth,
            "json_indent": self.json_indent,
            "json_ensure_ascii": self.json_ensure_ascii,
        }

    def __repr__(self) -> str:
        return f"DesensitizeConfig(strict={self.strict}, max_depth={self.max_depth}, renderer={self.renderer!r})"


# Loaded lazily so tests can change the environment first.
_config: Optional[DesensitizeConfig] = None


def get_config() -> DesensitizeConfig:
    """Get the global configuration, creating it from the environment if needed."""
    global _config
    if _config is None:
        _config = DesensitizeConfig.from_environment()
    return _config


def reset_config() -> None:
    """Reset the global configuration for testing purposes."""
    global _config
    _config = None
