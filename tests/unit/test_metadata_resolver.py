"""Unit tests for metadata declaration and resolution."""

from dataclasses import dataclass
from typing import Annotated

import pytest

from fieldcloak.core.exceptions import UnresolvableConditionError, UnresolvableStrategyError
from fieldcloak.core.fields import FieldDescriptor, fields_of, register_field_policy
from fieldcloak.core.metadata import (
    BUILT_IN,
    Sensitive,
    SensitiveIgnore,
    SensitivePhone,
    condition_reference,
    is_field_metadata,
    strategy_reference,
)
from fieldcloak.core.resolver import NO_MASKING, ComponentFactory, MetadataResolver
from fieldcloak.strategies import (
    BuiltInStrategyRegistry,
    NeverApply,
    PhoneStrategy,
    RedactStrategy,
    get_builtin_registry,
)
from tests.models import (
    Broken,
    BrokenGuard,
    Conditional,
    Layered,
    Never,
    NonEmpty,
    ReverseStrategy,
    SaltedStrategy,
    Shout,
    Skipped,
    Unregistered,
    UpperStrategy,
    User,
)


def field_named(cls: type, name: str) -> FieldDescriptor:
    return next(d for d in fields_of(cls) if d.name == name)


class TestMetadataMarkers:
    """Test the metadata declaration helpers."""

    def test_builtin_reference(self) -> None:
        assert strategy_reference(SensitivePhone()) is BUILT_IN
        assert condition_reference(SensitivePhone()) is None

    def test_custom_references_on_class_and_instance(self) -> None:
        """References are read from the item's type, given as class or instance."""
        assert strategy_reference(Shout) is UpperStrategy
        assert condition_reference(Shout()) is NonEmpty

    def test_references_are_not_inherited(self) -> None:
        class Louder(Shout):
            pass

        assert strategy_reference(Louder) is None

    def test_built_in_cannot_be_instantiated(self) -> None:
        with pytest.raises(TypeError):
            BUILT_IN()

    def test_is_field_metadata(self) -> None:
        assert is_field_metadata(SensitiveIgnore())
        assert is_field_metadata(Sensitive(strategy=RedactStrategy))
        assert is_field_metadata(Shout)
        assert not is_field_metadata("just documentation")
        assert not is_field_metadata(42)


class TestMetadataResolver:
    """Test precedence rules of MetadataResolver.resolve."""

    @pytest.fixture
    def resolver(self) -> MetadataResolver:
        return MetadataResolver()

    def test_no_metadata(self, resolver: MetadataResolver) -> None:
        resolution = resolver.resolve(field_named(User, "nickname"))
        assert resolution == NO_MASKING
        assert not resolution.masks
        assert not resolution.skip

    def test_skip_wins_regardless_of_position(self, resolver: MetadataResolver) -> None:
        """A skip item suppresses an explicit strategy before or after it."""
        for name in ("token", "code"):
            resolution = resolver.resolve(field_named(Skipped, name))
            assert resolution.skip
            assert resolution.strategy is None
            assert resolution.condition is None

    def test_explicit_strategy_class(self, resolver: MetadataResolver) -> None:
        resolution = resolver.resolve(field_named(Conditional, "always"))
        assert isinstance(resolution.strategy, RedactStrategy)
        assert resolution.condition is None

    def test_explicit_strategy_and_condition(self, resolver: MetadataResolver) -> None:
        resolution = resolver.resolve(field_named(Conditional, "never"))
        assert isinstance(resolution.strategy, RedactStrategy)
        assert isinstance(resolution.condition, NeverApply)

    def test_explicit_instance_used_as_is(self, resolver: MetadataResolver) -> None:
        strategy = RedactStrategy(replacement="[hidden]")

        @dataclass
        class Holder:
            secret: Annotated[str, Sensitive(strategy=strategy)]

        assert resolver.resolve(field_named(Holder, "secret")).strategy is strategy

    def test_explicit_item_beats_class_level_references(self, resolver: MetadataResolver) -> None:
        @dataclass
        class Holder:
            value: Annotated[str, Shout(), Sensitive(strategy=ReverseStrategy)]

        resolution = resolver.resolve(field_named(Holder, "value"))
        assert isinstance(resolution.strategy, ReverseStrategy)
        assert resolution.condition is None

    def test_builtin_lookup(self, resolver: MetadataResolver) -> None:
        """BUILT_IN resolves through the registry by metadata type."""
        resolution = resolver.resolve(field_named(User, "phone"))
        assert isinstance(resolution.strategy, PhoneStrategy)
        assert resolution.strategy is get_builtin_registry().resolve(SensitivePhone)

    def test_class_level_strategy_and_condition(self, resolver: MetadataResolver) -> None:
        resolution = resolver.resolve(field_named(Conditional, "shouted"))
        assert isinstance(resolution.strategy, UpperStrategy)
        assert isinstance(resolution.condition, NonEmpty)

    def test_first_strategy_and_first_condition_win(self, resolver: MetadataResolver) -> None:
        """Strategy and condition are picked independently, earliest first."""
        resolution = resolver.resolve(field_named(Layered, "value"))
        assert isinstance(resolution.strategy, ReverseStrategy)
        assert isinstance(resolution.condition, NeverApply)

    def test_unregistered_builtin(self, resolver: MetadataResolver) -> None:
        @dataclass
        class Holder:
            value: Annotated[str, Unregistered()]

        with pytest.raises(UnresolvableStrategyError) as exc_info:
            resolver.resolve(field_named(Holder, "value"))
        assert exc_info.value.context["field_name"] == "value"
        assert exc_info.value.context["referenced_type"] == "Unregistered"

    def test_strategy_without_parameterless_constructor(self, resolver: MetadataResolver) -> None:
        with pytest.raises(UnresolvableStrategyError) as exc_info:
            resolver.resolve(field_named(Broken, "token"))
        error = exc_info.value
        assert error.context["owner"] == "Broken"
        assert error.context["original_error_type"] == "TypeError"
        assert error.recovery_suggestions

    def test_condition_without_parameterless_constructor(self, resolver: MetadataResolver) -> None:
        with pytest.raises(UnresolvableConditionError):
            resolver.resolve(field_named(BrokenGuard, "token"))

    def test_reference_without_capability(self, resolver: MetadataResolver) -> None:
        """A referenced type must provide mask() or is_applicable()."""

        @dataclass
        class Holder:
            value: Annotated[str, Sensitive(strategy=object)]

        with pytest.raises(UnresolvableStrategyError, match="Cannot instantiate strategy"):
            resolver.resolve(field_named(Holder, "value"))

    def test_local_registry(self) -> None:
        registry = BuiltInStrategyRegistry(loader=lambda: {Unregistered: RedactStrategy()})
        resolver = MetadataResolver(builtins=registry)

        @dataclass
        class Holder:
            value: Annotated[str, Unregistered()]

        assert isinstance(resolver.resolve(field_named(Holder, "value")).strategy, RedactStrategy)


class TestPolicyPrecedence:
    """Registered policy items only fill in for fields that declare nothing."""

    @pytest.fixture
    def resolver(self) -> MetadataResolver:
        return MetadataResolver()

    def test_declared_builtin_beats_policy_strategy(self, resolver: MetadataResolver) -> None:
        register_field_policy(User, "phone", Sensitive(strategy=RedactStrategy))
        resolution = resolver.resolve(field_named(User, "phone"))
        assert isinstance(resolution.strategy, PhoneStrategy)

    def test_declared_builtin_beats_policy_skip(self, resolver: MetadataResolver) -> None:
        register_field_policy(User, "phone", SensitiveIgnore())
        resolution = resolver.resolve(field_named(User, "phone"))
        assert not resolution.skip
        assert isinstance(resolution.strategy, PhoneStrategy)

    def test_declared_skip_beats_policy_strategy(self, resolver: MetadataResolver) -> None:
        register_field_policy(Skipped, "token", Sensitive(strategy=RedactStrategy))
        assert resolver.resolve(field_named(Skipped, "token")).skip

    def test_policy_applies_to_undeclared_field(self, resolver: MetadataResolver) -> None:
        register_field_policy(User, "nickname", Sensitive(strategy=RedactStrategy))
        resolution = resolver.resolve(field_named(User, "nickname"))
        assert isinstance(resolution.strategy, RedactStrategy)

    def test_policy_applies_when_declared_metadata_has_no_strategy(self, resolver: MetadataResolver) -> None:
        @dataclass
        class Holder:
            value: Annotated[str, Never()]

        register_field_policy(Holder, "value", SensitivePhone())
        resolution = resolver.resolve(field_named(Holder, "value"))
        assert isinstance(resolution.strategy, PhoneStrategy)
        assert resolution.condition is None


class TestComponentFactory:
    """Test instantiation of referenced strategy and condition types."""

    def test_registered_factory(self) -> None:
        factory = ComponentFactory()
        factory.register(SaltedStrategy, lambda: SaltedStrategy("pepper"))
        resolver = MetadataResolver(factory=factory)

        strategy = resolver.resolve(field_named(Broken, "token")).strategy
        assert isinstance(strategy, SaltedStrategy)
        assert strategy.salt == "pepper"

    def test_copy_is_independent(self) -> None:
        factory = ComponentFactory()
        clone = factory.copy()
        clone.register(SaltedStrategy, lambda: SaltedStrategy("x"))

        with pytest.raises(UnresolvableStrategyError):
            factory.create(SaltedStrategy, "strategy", "mask")
        assert clone.create(SaltedStrategy, "strategy", "mask").salt == "x"

    def test_unregister(self) -> None:
        factory = ComponentFactory()
        factory.register(SaltedStrategy, lambda: SaltedStrategy("x"))
        factory.unregister(SaltedStrategy)
        with pytest.raises(UnresolvableStrategyError):
            factory.create(SaltedStrategy, "strategy", "mask")

    def test_instances_pass_through(self) -> None:
        condition = NeverApply()
        assert ComponentFactory().create(condition, "condition", "is_applicable") is condition
