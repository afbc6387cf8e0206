"""fieldcloak exception hierarchy.

Every error raised by the traversal, resolution and rendering machinery derives
from :class:`FieldCloakError`, which carries structured context so failures can
be logged or reported without string parsing.
"""

from typing import Any, Dict, List, Optional


class FieldCloakError(Exception):
    """Base exception for all fieldcloak errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error identifier
        context: Additional error context and metadata
        recovery_suggestions: List of suggested recovery actions
        component: Component where the error originated
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        recovery_suggestions: Optional[List[str]] = None,
        component: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._default_error_code()
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        self.component = component or self._infer_component()

    def _default_error_code(self) -> str:
        """Generate default error code based on exception class name."""
        return self.__class__.__name__.upper().replace("ERROR", "_ERROR")

    def _infer_component(self) -> str:
        """Infer component name from exception class."""
        name = self.__class__.__name__.lower()
        if "validation" in name or "argument" in name:
            return "validation"
        elif "unresolvable" in name or "resolution" in name:
            return "resolver"
        elif "access" in name or "shape" in name or "desensitization" in name:
            return "traversal"
        elif "policy" in name:
            return "policy"
        else:
            return "core"

    def add_context(self, key: str, value: Any) -> None:
        """Add additional context to the error."""
        self.context[key] = value

    def add_recovery_suggestion(self, suggestion: str) -> None:
        """Add a recovery suggestion to help users resolve the error."""
        if suggestion not in self.recovery_suggestions:
            self.recovery_suggestions.append(suggestion)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to structured dictionary for logging/reporting."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "component": self.component,
            "context": self.context,
            "recovery_suggestions": self.recovery_suggestions,
        }


class ValidationError(FieldCloakError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        expected_type: Optional[str] = None,
        actual_value: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if field_name:
            self.add_context("field_name", field_name)
        if expected_type:
            self.add_context("expected_type", expected_type)
        if actual_value is not None:
            self.add_context("actual_value", str(actual_value))


class NullArgumentError(ValidationError):
    """Raised when an entry point receives ``None`` where an object is required."""


class ConfigurationError(ValidationError):
    """Raised when configuration is invalid or incomplete."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if config_key:
            self.add_context("config_key", config_key)


class ResolutionError(FieldCloakError):
    """Raised when field metadata cannot be turned into a strategy or condition."""

    def __init__(
        self,
        message: str,
        owner: Optional[str] = None,
        field_name: Optional[str] = None,
        referenced_type: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if owner:
            self.add_context("owner", owner)
        if field_name:
            self.add_context("field_name", field_name)
        if referenced_type:
            self.add_context("referenced_type", referenced_type)


class UnresolvableStrategyError(ResolutionError):
    """A referenced strategy type could not be instantiated."""


class UnresolvableConditionError(ResolutionError):
    """A referenced condition type could not be instantiated."""


class FieldAccessDeniedError(FieldCloakError):
    """Raised when a field cannot be read from or written to an instance."""

    def __init__(
        self,
        message: str,
        owner: Optional[str] = None,
        field_name: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if owner:
            self.add_context("owner", owner)
        if field_name:
            self.add_context("field_name", field_name)
        if operation:
            self.add_context("operation", operation)


class UnsupportedShapeError(FieldCloakError):
    """Raised when a field's shape has no masking rule."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        shape: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if field_name:
            self.add_context("field_name", field_name)
        if shape:
            self.add_context("shape", shape)


class DesensitizationError(FieldCloakError):
    """The single error surfaced to callers when a top-level call fails.

    The underlying failure, when there is one, is available as ``__cause__``
    and summarised in ``context["original_error"]``.
    """

    def __init__(
        self,
        message: str,
        target_type: Optional[str] = None,
        original_error: Optional[Exception] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if target_type:
            self.add_context("target_type", target_type)
        if original_error is not None:
            self.add_context("original_error", str(original_error))
            self.add_context("original_error_type", type(original_error).__name__)


class PolicyError(FieldCloakError):
    """Raised when a field policy file cannot be loaded or applied."""

    def __init__(
        self,
        message: str,
        policy_file: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if policy_file:
            self.add_context("policy_file", policy_file)


def create_resolution_error(
    kind: str,
    referenced: Any,
    owner: Optional[type] = None,
    field_name: Optional[str] = None,
    original_error: Optional[Exception] = None,
) -> ResolutionError:
    """Create an unresolvable strategy/condition error with standard context."""
    referenced_name = getattr(referenced, "__qualname__", repr(referenced))
    error_cls = UnresolvableStrategyError if kind == "strategy" else UnresolvableConditionError
    error = error_cls(
        f"Cannot instantiate {kind} {referenced_name}",
        owner=owner.__qualname__ if owner is not None else None,
        field_name=field_name,
        referenced_type=referenced_name,
    )

    if original_error:
        error.add_context("original_error", str(original_error))
        error.add_context("original_error_type", type(original_error).__name__)

    error.add_recovery_suggestion(
        f"Give {referenced_name} a parameterless constructor or register a factory for it"
    )
    return error


def wrap_error(error: Exception, target: Any) -> DesensitizationError:
    """Wrap a failure into the single error type surfaced by the facade."""
    if isinstance(error, DesensitizationError):
        return error
    wrapped = DesensitizationError(
        f"Desensitization of {type(target).__qualname__} failed: {error}",
        target_type=type(target).__qualname__,
        original_error=error,
    )
    if isinstance(error, FieldCloakError):
        wrapped.context.update({k: v for k, v in error.context.items() if k not in wrapped.context})
        for suggestion in error.recovery_suggestions:
            wrapped.add_recovery_suggestion(suggestion)
    return wrapped
