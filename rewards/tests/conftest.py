from datetime import datetime

import pytest

from rewards.config import EconomySettings
from rewards.service import RewardsService
from rewards.storage import InMemoryStorage

from helpers import MYT, WHEEL_PRIZES, FakeClock, ScriptedRandom


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 10, 9, 0, tzinfo=MYT))


@pytest.fixture
def make_service(clock):
    def factory(balance=850, prizes=WHEEL_PRIZES, shop_items=(), rng=None, storage=None, **overrides):
        settings = EconomySettings(_env_file=None, opening_balance=balance, **overrides)
        return RewardsService(
            storage=storage or InMemoryStorage(),
            prizes=prizes,
            shop_items=list(shop_items),
            settings=settings,
            tz=MYT,
            rng=rng or ScriptedRandom(),
            clock=clock,
        )
    return factory
