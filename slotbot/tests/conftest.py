from __future__ import annotations

import pytest

from slotbot.domain import SlotSourceDescriptor
from slotbot.history import HistoryLog
from slotbot.tests.fakes import FakeChannel


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def history() -> HistoryLog:
    return HistoryLog(capacity=10)


@pytest.fixture
def descriptor() -> SlotSourceDescriptor:
    return SlotSourceDescriptor(base_url="https://slots.example.test/hague", timezone="Europe/Amsterdam")
