"""fieldcloak: desensitization of in-memory object graphs.

fieldcloak masks designated fields of dataclasses and annotated classes before
they are copied or serialized, so sensitive values never leave a trusted
boundary in cleartext. Fields opt in through declarative metadata; callers get
either a masked deep copy or a masked JSON rendering, and the original object
is never modified.
"""

__version__ = "0.1.0"
__author__ = "fieldcloak Team"
__email__ = "contact@example.com"

# Core API exports
from .core import (
    BUILT_IN,
    METADATA_KEY,
    ComponentFactory,
    DesensitizationError,
    DesensitizeConfig,
    FieldAccessDeniedError,
    FieldCloakError,
    FieldDescriptor,
    MetadataResolver,
    NullArgumentError,
    RunContext,
    Sensitive,
    SensitiveBankCard,
    SensitiveCardId,
    SensitiveChineseName,
    SensitiveEmail,
    SensitiveIgnore,
    SensitivePassword,
    SensitivePhone,
    TypeShape,
    UnresolvableConditionError,
    UnresolvableStrategyError,
    UnsupportedShapeError,
    fields_of,
    register_factory,
    register_field_policy,
    register_fields,
    sensitive_condition,
    sensitive_strategy,
)
from .core.policy_loader import FieldPolicyLoader, load_field_policies

# High-level API
from .engine import DesensitizeEngine, MaskResult
from .engine_builder import DesensitizeEngineBuilder

# Rendering and traversal
from .masking import JsonRenderer, TraversalEngine, ValueContext

# Strategy system
from .strategies import ICondition, IStrategy, register_builtin
from .utils import des_copy, des_copy_collection, des_json, des_json_collection

__all__ = [
    "__version__",
    "__author__",
    "__email__",
    # High-level API
    "DesensitizeEngine",
    "DesensitizeEngineBuilder",
    "MaskResult",
    "des_copy",
    "des_json",
    "des_copy_collection",
    "des_json_collection",
    # Configuration
    "DesensitizeConfig",
    # Metadata
    "METADATA_KEY",
    "BUILT_IN",
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
    # Fields and policies
    "FieldDescriptor",
    "fields_of",
    "register_fields",
    "register_field_policy",
    "FieldPolicyLoader",
    "load_field_policies",
    # Resolution
    "ComponentFactory",
    "MetadataResolver",
    "register_factory",
    "register_builtin",
    # Strategy system
    "IStrategy",
    "ICondition",
    # Traversal and rendering
    "RunContext",
    "TypeShape",
    "TraversalEngine",
    "JsonRenderer",
    "ValueContext",
    # Exceptions
    "FieldCloakError",
    "DesensitizationError",
    "NullArgumentError",
    "UnresolvableStrategyError",
    "UnresolvableConditionError",
    "FieldAccessDeniedError",
    "UnsupportedShapeError",
]
