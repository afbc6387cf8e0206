"""Core building blocks: classification, metadata, resolution and configuration."""

from .classifier import TypeShape, classify, classify_value, is_bean, is_scalar
from .config import DeepCopier, DesensitizeConfig, StdDeepCopier, get_config, reset_config
from .context import RunContext
from .exceptions import (
    ConfigurationError,
    DesensitizationError,
    FieldAccessDeniedError,
    FieldCloakError,
    NullArgumentError,
    PolicyError,
    ResolutionError,
    UnresolvableConditionError,
    UnresolvableStrategyError,
    UnsupportedShapeError,
    ValidationError,
)
from .fields import (
    FieldDescriptor,
    FieldDescriptorCache,
    fields_of,
    get_field_cache,
    register_field_policy,
    register_fields,
)
from .metadata import (
    BUILT_IN,
    METADATA_KEY,
    Sensitive,
    SensitiveBankCard,
    SensitiveCardId,
    SensitiveChineseName,
    SensitiveEmail,
    SensitiveIgnore,
    SensitiveMetadata,
    SensitivePassword,
    SensitivePhone,
    sensitive_condition,
    sensitive_strategy,
)
from .resolver import ComponentFactory, MetadataResolver, Resolution, register_factory

__all__ = [
    # Classification
    "TypeShape",
    "classify",
    "classify_value",
    "is_bean",
    "is_scalar",
    # Configuration
    "DesensitizeConfig",
    "DeepCopier",
    "StdDeepCopier",
    "get_config",
    "reset_config",
    # Run context
    "RunContext",
    # Exceptions
    "FieldCloakError",
    "ValidationError",
    "NullArgumentError",
    "ConfigurationError",
    "ResolutionError",
    "UnresolvableStrategyError",
    "UnresolvableConditionError",
    "FieldAccessDeniedError",
    "UnsupportedShapeError",
    "DesensitizationError",
    "PolicyError",
    # Fields
    "FieldDescriptor",
    "FieldDescriptorCache",
    "fields_of",
    "get_field_cache",
    "register_fields",
    "register_field_policy",
    # Metadata
    "METADATA_KEY",
    "BUILT_IN",
    "SensitiveMetadata",
    "Sensitive",
    "SensitiveIgnore",
    "SensitiveChineseName",
    "SensitivePhone",
    "SensitiveEmail",
    "SensitiveCardId",
    "SensitiveBankCard",
    "SensitivePassword",
    "sensitive_strategy",
    "sensitive_condition",
    # Resolution
    "ComponentFactory",
    "MetadataResolver",
    "Resolution",
    "register_factory",
]
