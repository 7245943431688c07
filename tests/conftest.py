"""Shared pytest fixtures for Coworkly tests."""
import sys
sys.dont_write_bytecode = True

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402

from coworkly.domain.models import Space  # noqa: E402
from coworkly.domain.scheduling import SchedulingService  # noqa: E402
from coworkly.infra.memory_store import MemoryStore  # noqa: E402

from .helpers import INACTIVE_SPACE_ID, NOW, OTHER_SPACE_ID, SPACE_ID  # noqa: E402


@pytest.fixture
def clock():
    """Fixed clock at NOW."""
    return lambda: NOW


@pytest.fixture
def store():
    s = MemoryStore()
    s.add_space(Space(id=SPACE_ID, price=Decimal("50.00"), name="Hot desk"))
    s.add_space(Space(id=OTHER_SPACE_ID, price=Decimal("30.00"), name="Meeting room"))
    s.add_space(Space(id=INACTIVE_SPACE_ID, price=Decimal("10.00"), is_active=False))
    return s


@pytest.fixture
def service(store, clock):
    return SchedulingService(store, clock=clock)
