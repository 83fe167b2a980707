from __future__ import annotations

import pytest

from tests.fakes import FakeCart, FakeClock, FakeNotifier


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cart() -> FakeCart:
    return FakeCart()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()
