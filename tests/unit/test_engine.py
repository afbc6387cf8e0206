"""Unit tests for the DesensitizeEngine facade."""

import copy
import json

import pytest

from fieldcloak import DesensitizeEngine, MaskResult
from fieldcloak.core.config import DesensitizeConfig
from fieldcloak.core.exceptions import (
    DesensitizationError,
    NullArgumentError,
    UnresolvableStrategyError,
)
from tests.models import (
    Account,
    Broken,
    Conditional,
    Counted,
    CountingStrategy,
    Directory,
    FrozenCard,
    Identity,
    Node,
    Order,
    Skipped,
    Team,
    User,
)


class TestMaskCopy:
    """Test the copy path."""

    def test_phone_scenario(self, engine: DesensitizeEngine) -> None:
        user = User(name="张三", phone="13812345678")
        masked = engine.mask_copy(user)

        assert masked.phone == "138****5678"
        assert user.phone == "13812345678"
        assert masked is not user

    def test_original_is_never_mutated(self, engine: DesensitizeEngine, order: Order) -> None:
        snapshot = copy.deepcopy(order)
        engine.mask_copy(order)
        assert order == snapshot

    def test_array_of_nested_composites(self, engine: DesensitizeEngine, order: Order) -> None:
        masked = engine.mask_copy(order)

        assert len(masked.items) == 3
        assert [item.phone for item in masked.items] == ["138****0001", "138****0002", "138****0003"]
        assert [item.name for item in masked.items] == ["张*", "李*", "王*二"]
        assert masked.owner.email == "own**@example.com"
        assert all(item.phone.startswith("1380") for item in order.items)

    def test_all_builtins(self, engine: DesensitizeEngine, user: User) -> None:
        masked = engine.mask_copy(user)
        assert masked == User(
            name="脱*君",
            phone="138****5678",
            email="123**@qq.com",
            password=None,
            nickname="neo",
        )

    def test_identity_cards(self, engine: DesensitizeEngine) -> None:
        masked = engine.mask_copy(Identity(card_id="123456190001011234", bank_card="6222600260001072444"))
        assert masked.card_id == "123456**********34"
        assert masked.bank_card == "622260*********2444"

    def test_skip_with_explicit_strategy_behaves_as_skip(self, engine: DesensitizeEngine) -> None:
        assert engine.mask_copy(Skipped(token="abc", code="xyz")) == Skipped(token="abc", code="xyz")

    def test_conditions(self, engine: DesensitizeEngine) -> None:
        masked = engine.mask_copy(Conditional(always="a", never="b", shouted=""))
        assert (masked.always, masked.never, masked.shouted) == ("******", "b", "")

    def test_frozen_dataclass(self, engine: DesensitizeEngine) -> None:
        card = FrozenCard(number="6222600260001072444")
        assert engine.mask_copy(card).number == "622260*********2444"
        assert card.number == "6222600260001072444"

    def test_cycles(self, engine: DesensitizeEngine) -> None:
        node = Node(phone="13812345678")
        node.next = node
        masked = engine.mask_copy(node)
        assert masked.phone == "138****5678"
        assert masked.next is masked

    def test_top_level_list(self, engine: DesensitizeEngine) -> None:
        users = [User(name="张三", phone="13800000001"), User(name="李四", phone="13800000002")]
        masked = engine.mask_copy(users)
        assert [u.phone for u in masked] == ["138****0001", "138****0002"]
        assert users[0].phone == "13800000001"

    def test_shape_preserved(self, engine: DesensitizeEngine) -> None:
        team = Team(members=(User(name="张三", phone="13800000001"),), leads=[])
        masked = engine.mask_copy(team)
        assert isinstance(masked.members, tuple)
        assert len(masked.members) == 1
        assert masked.leads == []

    def test_composites_held_in_mappings(self, engine: DesensitizeEngine) -> None:
        """Both paths mask users stored as dictionary values."""
        directory = Directory(by_name={"a": User(name="张三", phone="13812345678")})

        masked = engine.mask_copy(directory)
        assert masked.by_name["a"].phone == "138****5678"
        assert directory.by_name["a"].phone == "13812345678"
        assert json.loads(engine.mask_json(directory))["by_name"]["a"]["phone"] == "138****5678"

    def test_none_raises(self, engine: DesensitizeEngine) -> None:
        with pytest.raises(NullArgumentError):
            engine.mask_copy(None)

    def test_failures_are_wrapped(self, engine: DesensitizeEngine) -> None:
        broken = Broken(token="abc", phone="13812345678")
        with pytest.raises(DesensitizationError) as exc_info:
            engine.mask_copy(broken)

        error = exc_info.value
        assert isinstance(error.__cause__, UnresolvableStrategyError)
        assert error.context["target_type"] == "Broken"
        assert error.context["field_name"] == "token"
        assert broken.phone == "13812345678"

    def test_deep_copy_failure_is_wrapped(self) -> None:
        class FailingCopier:
            def deep_copy(self, obj):
                raise RuntimeError("no copy")

        engine = DesensitizeEngine(config=DesensitizeConfig(deep_copier=FailingCopier()))
        with pytest.raises(DesensitizationError, match="no copy"):
            engine.mask_copy(User(name="a", phone="1"))

    def test_max_depth_from_config(self) -> None:
        engine = DesensitizeEngine(config=DesensitizeConfig(max_depth=2))
        chain = Node(phone="1", next=Node(phone="2", next=Node(phone="3")))
        with pytest.raises(DesensitizationError, match="max_depth=2"):
            engine.mask_copy(chain)


class TestMaskCopyResult:
    """Test result reporting in non-strict mode."""

    def test_complete_result(self, engine: DesensitizeEngine) -> None:
        result = engine.mask_copy_result(User(name="张三", phone="13812345678"))
        assert isinstance(result, MaskResult)
        assert result.complete
        assert result.errors == []

    def test_skipped_fields_are_reported(self, lenient_engine: DesensitizeEngine) -> None:
        result = lenient_engine.mask_copy_result(Broken(token="abc", phone="13812345678"))

        assert not result.complete
        assert isinstance(result.errors[0], UnresolvableStrategyError)
        assert result.value.token == "abc"
        assert result.value.phone == "138****5678"


class TestMaskJson:
    """Test the text path."""

    def test_none_renders_null_without_strategies(self, engine: DesensitizeEngine) -> None:
        CountingStrategy.calls = 0
        assert engine.mask_json(None) == "null"
        assert CountingStrategy.calls == 0

    def test_phone_scenario(self, engine: DesensitizeEngine) -> None:
        user = User(name="张三", phone="13812345678")
        rendered = json.loads(engine.mask_json(user))

        assert rendered["phone"] == "138****5678"
        assert rendered["name"] == "张*"
        assert user.phone == "13812345678"

    def test_password_renders_null(self, engine: DesensitizeEngine, user: User) -> None:
        assert json.loads(engine.mask_json(user))["password"] is None

    def test_nested_graph(self, engine: DesensitizeEngine, order: Order) -> None:
        rendered = json.loads(engine.mask_json(order))
        assert [item["phone"] for item in rendered["items"]] == ["138****0001", "138****0002", "138****0003"]
        assert rendered["owner"]["phone"] == "139****0000"
        assert rendered["order_no"] == "A-001"
        assert order.items[0].phone == "13800000001"

    def test_skip_and_conditions(self, engine: DesensitizeEngine) -> None:
        assert json.loads(engine.mask_json(Skipped(token="abc", code="xyz"))) == {"token": "abc", "code": "xyz"}
        rendered = json.loads(engine.mask_json(Conditional(always="a", never="b", shouted="hi")))
        assert rendered == {"always": "******", "never": "b", "shouted": "HI"}

    def test_conditions_read_the_live_object(self, engine: DesensitizeEngine) -> None:
        """Nothing is written back on the text path, so siblings stay unmasked."""
        rendered = json.loads(engine.mask_json(Account(phone="13812345678", note="call me")))
        assert rendered == {"phone": "138****5678", "note": "call me"}

    def test_strategy_runs_per_value(self, engine: DesensitizeEngine) -> None:
        CountingStrategy.calls = 0
        assert json.loads(engine.mask_json(Counted(value="x"))) == {"value": "#"}
        assert CountingStrategy.calls == 1

    def test_failures_are_wrapped(self, engine: DesensitizeEngine) -> None:
        with pytest.raises(DesensitizationError) as exc_info:
            engine.mask_json(Broken(token="abc"))
        assert isinstance(exc_info.value.__cause__, UnresolvableStrategyError)

    def test_lenient_result(self, lenient_engine: DesensitizeEngine) -> None:
        result = lenient_engine.mask_json_result(Broken(token="abc", phone="13812345678"))
        assert json.loads(result.value) == {"token": "abc", "phone": "138****5678"}
        assert len(result.errors) == 1


class TestCollections:
    """Test the collection helpers."""

    def test_mask_copy_collection(self, engine: DesensitizeEngine) -> None:
        users = [User(name="张三", phone="13800000001"), None]
        masked = engine.mask_copy_collection(users)
        assert masked[0].phone == "138****0001"
        assert masked[1] is None
        assert users[0].phone == "13800000001"

    def test_mask_json_collection(self, engine: DesensitizeEngine) -> None:
        rendered = engine.mask_json_collection([User(name="张三", phone="13800000001"), None])
        assert json.loads(rendered[0])["phone"] == "138****0001"
        assert rendered[1] == "null"

    @pytest.mark.parametrize("items", [None, [], ()])
    def test_empty_input(self, engine: DesensitizeEngine, items) -> None:
        assert engine.mask_copy_collection(items) == []
        assert engine.mask_json_collection(items) == []


class TestEngineConstruction:
    """Test engine defaults."""

    def test_defaults_come_from_global_config(self) -> None:
        engine = DesensitizeEngine()
        assert engine.config.strict is True
        assert engine.config.max_depth == 64

    def test_builder_shortcut(self) -> None:
        engine = DesensitizeEngine.builder().with_strict(False).build()
        assert engine.config.strict is False
