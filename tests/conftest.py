"""Shared event types and fixtures for raiser tests."""

from dataclasses import dataclass

import pytest

from raiser import DomainEvent


@dataclass
class Ping:
    msg: str = "ping"


@dataclass
class Pong:
    msg: str = "pong"


@dataclass
class ParentEvent:
    msg: str = "parent"


@dataclass
class ChildEvent(ParentEvent):
    extra: str = "child"


class UserCreated(DomainEvent):
    user_id: str


class OrderPlaced(DomainEvent):
    order_id: str
    amount: int = 0


@pytest.fixture
def calls() -> list:
    """Shared list handlers append to, to observe invocation order."""
    return []
