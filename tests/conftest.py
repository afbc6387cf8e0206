"""Shared fixtures for fieldcloak tests."""

from collections.abc import Generator

import pytest

from fieldcloak import DesensitizeEngine, DesensitizeEngineBuilder
from fieldcloak.core.config import DesensitizeConfig, reset_config
from fieldcloak.core.fields import get_field_cache
from fieldcloak.utils import reset_default_engine
from tests.models import Order, User

ENV_VARS = (
    "FIELDCLOAK_STRICT",
    "FIELDCLOAK_MAX_DEPTH",
    "FIELDCLOAK_JSON_INDENT",
    "FIELDCLOAK_JSON_ENSURE_ASCII",
)


@pytest.fixture(autouse=True)
def isolated_state(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Reset process-wide state (config, default engine, field registrations)."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    reset_default_engine()
    get_field_cache().clear()
    yield
    reset_config()
    reset_default_engine()
    get_field_cache().clear()


@pytest.fixture
def engine() -> DesensitizeEngine:
    """Create a strict DesensitizeEngine with default settings."""
    return DesensitizeEngine(config=DesensitizeConfig())


@pytest.fixture
def lenient_engine() -> DesensitizeEngine:
    """Create an engine that skips failing fields instead of aborting."""
    return DesensitizeEngineBuilder().with_strict(False).build()


@pytest.fixture
def user() -> User:
    """A user with every sensitive field populated."""
    return User(
        name="脱敏君",
        phone="13812345678",
        email="12345@qq.com",
        password="s3cret",
        nickname="neo",
    )


@pytest.fixture
def order() -> Order:
    """An order holding three users and an owner."""
    items = [
        User(name="张三", phone="13800000001", email="alice@example.com"),
        User(name="李四", phone="13800000002", email="bob@example.com"),
        User(name="王小二", phone="13800000003", email="carol@example.com"),
    ]
    owner = User(name="赵六", phone="13900000000", email="owner@example.com")
    return Order(order_no="A-001", items=items, owner=owner)
