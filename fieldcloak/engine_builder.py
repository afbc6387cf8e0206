"""Builder pattern for advanced DesensitizeEngine configuration."""

from pathlib import Path
from typing import Any, Callable, Optional, Union

from fieldcloak.core.config import DesensitizeConfig, get_config
from fieldcloak.core.policy_loader import FieldPolicyLoader
from fieldcloak.core.resolver import ComponentFactory, MetadataResolver, get_component_factory
from fieldcloak.engine import DesensitizeEngine


class DesensitizeEngineBuilder:
    """Fluent builder for DesensitizeEngine.

    Examples:
        # Lenient engine with a custom deep copy and pretty JSON
        engine = (
            DesensitizeEngine.builder()
            .with_deep_copy(my_copier)
            .with_strict(False)
            .with_json_options(indent=2)
            .build()
        )

        # Strategy that needs constructor arguments
        engine = (
            DesensitizeEngine.builder()
            .with_component_factory(SaltedHash, lambda: SaltedHash(salt=secret))
            .with_field_policies("policies/users.yaml")
            .build()
        )
    """

    def __init__(self) -> None:
        """Initialize builder with default values."""
        self._config: Optional[DesensitizeConfig] = None
        self._deep_copier: Any = None
        self._renderer: Any = None
        self._strict: Optional[bool] = None
        self._max_depth: Optional[int] = None
        self._json_options: Optional[tuple[Optional[int], bool]] = None
        self._factories: dict[type, Callable[[], Any]] = {}
        self._policy_files: list[Path] = []

    def with_config(self, config: DesensitizeConfig) -> "DesensitizeEngineBuilder":
        """Start from an existing configuration; other ``with_*`` calls override it.

        Without it the builder starts from the environment-derived global config.

        Args:
            config: Base configuration

        Returns:
            Self for method chaining
        """
        self._config = config
        return self

    def with_deep_copy(self, deep_copier: Any) -> "DesensitizeEngineBuilder":
        """Set the deep-copy collaborator.

        Args:
            deep_copier: Object with a ``deep_copy(obj)`` method, or a plain
                callable taking the object

        Returns:
            Self for method chaining
        """
        if not hasattr(deep_copier, "deep_copy") and callable(deep_copier):
            deep_copier = _CallableCopier(deep_copier)
        self._deep_copier = deep_copier
        return self

    def with_serializer(self, renderer: Any) -> "DesensitizeEngineBuilder":
        """Set the text collaborator (``render(obj, interceptor) -> str``)."""
        self._renderer = renderer
        return self

    def with_strict(self, strict: bool = True) -> "DesensitizeEngineBuilder":
        """Abort on the first failure (True) or skip failing fields (False)."""
        self._strict = strict
        return self

    def with_max_depth(self, max_depth: int) -> "DesensitizeEngineBuilder":
        """Set the maximum composite nesting depth.

        Raises:
            ValueError: If max_depth is not positive
        """
        if max_depth <= 0:
            raise ValueError("max_depth must be a positive integer")
        self._max_depth = max_depth
        return self

    def with_json_options(
        self, indent: Optional[int] = None, ensure_ascii: bool = False
    ) -> "DesensitizeEngineBuilder":
        """Options for the default JSON renderer; ignored with a custom serializer."""
        self._json_options = (indent, ensure_ascii)
        return self

    def with_component_factory(self, cls: type, factory: Callable[[], Any]) -> "DesensitizeEngineBuilder":
        """Register how to build a strategy or condition class for this engine only."""
        self._factories[cls] = factory
        return self

    def with_field_policies(self, policy_path: Union[str, Path]) -> "DesensitizeEngineBuilder":
        """Load and register a field policy file when the engine is built.

        Policies attach to classes process-wide, like declared metadata.
        """
        self._policy_files.append(Path(policy_path))
        return self

    def build(self) -> DesensitizeEngine:
        """Build and return the configured DesensitizeEngine instance."""
        base = self._config or get_config()
        values: dict[str, Any] = {
            "deep_copier": base.deep_copier,
            "renderer": base.renderer,
            "strict": base.strict,
            "max_depth": base.max_depth,
            "json_indent": base.json_indent,
            "json_ensure_ascii": base.json_ensure_ascii,
        }
        if self._deep_copier is not None:
            values["deep_copier"] = self._deep_copier
        if self._strict is not None:
            values["strict"] = self._strict
        if self._max_depth is not None:
            values["max_depth"] = self._max_depth
        if self._json_options is not None:
            values["json_indent"], values["json_ensure_ascii"] = self._json_options
            values["renderer"] = None
        if self._renderer is not None:
            values["renderer"] = self._renderer
        config = DesensitizeConfig(**values)

        loader = FieldPolicyLoader()
        for policy_file in self._policy_files:
            loader.load_file(policy_file).apply()

        resolver = MetadataResolver(factory=self._build_factory())
        return DesensitizeEngine(config=config, resolver=resolver)

    def _build_factory(self) -> ComponentFactory:
        if not self._factories:
            return get_component_factory()
        factory = get_component_factory().copy()
        for cls, build in self._factories.items():
            factory.register(cls, build)
        return factory

    def reset(self) -> "DesensitizeEngineBuilder":
        """Reset builder to default values."""
        self.__init__()  # type: ignore[misc]
        return self


class _CallableCopier:
    def __init__(self, func: Callable[[Any], Any]) -> None:
        self._func = func

    def deep_copy(self, obj: Any) -> Any:
        return self._func(obj)

    def __repr__(self) -> str:
        return f"_CallableCopier({getattr(self._func, '__qualname__', self._func)!r})"
