from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest

from backend.apps.assets.models import Asset, UserAsset
from backend.apps.assets.services.balances import BalanceMutator
from backend.apps.pool.models import LaunchPool
from backend.apps.pool.services.ledger import LedgerEngine
from backend.apps.users.models import ExchangeUser

T0 = datetime(2025, 1, 1, tzinfo=dt_timezone.utc)


class FrozenClock:
    """Injectable clock that only moves when a test advances it."""

    def __init__(self, start=T0):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)
        return self.current


def approx_decimal(expected, places=9):
    """Decimal comparison tolerant of SQLite's float storage for NUMERIC columns."""
    return pytest.approx(Decimal(expected), abs=Decimal(10) ** -places)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def engine(clock):
    return LedgerEngine(now=clock)


@pytest.fixture
def balances(clock):
    return BalanceMutator(now=clock)


@pytest.fixture
def user(db):
    return ExchangeUser.objects.create(username="alice", email="alice@example.com")


@pytest.fixture
def other_user(db):
    return ExchangeUser.objects.create(username="bob")


@pytest.fixture
def stake_asset(db):
    return Asset.objects.create(symbol="USDT", name="Tether USD")


@pytest.fixture
def reward_asset(db):
    return Asset.objects.create(symbol="LPT", name="Launch Pool Token")


@pytest.fixture
def pool(stake_asset, reward_asset):
    return LaunchPool.objects.create(
        name="LPT Launch",
        stake_asset=stake_asset.symbol,
        reward_asset=reward_asset.symbol,
        start_time=T0,
        end_time=T0 + timedelta(days=400),
        apy=Decimal("0.10"),
    )


@pytest.fixture
def funded(user, stake_asset):
    """Alice holds 5000 USDT available."""
    return UserAsset.objects.create(user=user, asset=stake_asset, balance=Decimal("5000"))


def holding(user, symbol):
    return UserAsset.objects.filter(user=user, asset__symbol=symbol).first()
