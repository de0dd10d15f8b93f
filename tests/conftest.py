from __future__ import annotations

import pytest

from tests.fakes import FakeGoogle


@pytest.fixture
def fake_google() -> FakeGoogle:
    return FakeGoogle()
