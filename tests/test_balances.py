import re
from decimal import Decimal

import pytest

from backend.apps.assets.models import AssetTransaction, UserAsset
from backend.apps.assets.services.balances import as_amount, generate_tx_id
from backend.apps.pool.exceptions import AssetNotFound, InsufficientBalance, InvalidAmount
from tests.conftest import T0, holding

TX_ID_RE = re.compile(r"^tx_\d{14}_[A-Za-z0-9]{8}$")

pytestmark = pytest.mark.django_db


def test_tx_id_format():
    tx_id = generate_tx_id(T0)
    assert TX_ID_RE.match(tx_id)
    assert tx_id.startswith("tx_20250101000000_")


def test_tx_ids_differ_within_the_same_second():
    assert generate_tx_id(T0) != generate_tx_id(T0)


@pytest.mark.parametrize("value", ["abc", None, "NaN", "Infinity"])
def test_as_amount_rejects_non_numeric(value):
    with pytest.raises(InvalidAmount):
        as_amount(value)


@pytest.mark.parametrize("value", ["0.0000000000000000001", "1.1234567890123456789", "1e18", "1234567890123456789"])
def test_as_amount_rejects_what_the_columns_cannot_store(value):
    with pytest.raises(InvalidAmount):
        as_amount(value)


@pytest.mark.parametrize(
    "value",
    ["0.000000000000000001", "999999999999999999.999999999999999999", "1.50000000000000000000000", "0E-30"],
)
def test_as_amount_accepts_storable_values(value):
    assert as_amount(value) == Decimal(value)


def test_as_amount_keeps_printed_float_value():
    assert as_amount(0.1) == Decimal("0.1")


def test_distribute_opens_missing_holding(balances, user, reward_asset):
    created = balances.distribute(user.pk, "LPT", Decimal("12.5"))
    assert created.balance == Decimal("12.5")
    assert created.locked == Decimal("0")
    assert UserAsset.objects.filter(user=user, asset=reward_asset).count() == 1
    # no trail entry from the primitive itself
    assert not AssetTransaction.objects.exists()


def test_distribute_increments_existing_holding(balances, funded, user):
    balances.distribute(user.pk, "USDT", Decimal("250"))
    funded.refresh_from_db()
    assert funded.balance == Decimal("5250")
    assert funded.locked == Decimal("0")


def test_distribute_unknown_symbol(balances, user):
    with pytest.raises(AssetNotFound):
        balances.distribute(user.pk, "NOPE", Decimal("1"))
    assert not UserAsset.objects.exists()


def test_lock_and_release_move_funds_between_columns(balances, funded):
    balances.lock(funded, Decimal("1200"))
    assert (funded.balance, funded.locked) == (Decimal("3800"), Decimal("1200"))

    balances.release(funded, Decimal("200"))
    assert (funded.balance, funded.locked) == (Decimal("4000"), Decimal("1000"))


def test_lock_refuses_to_overdraw(balances, funded):
    with pytest.raises(InsufficientBalance):
        balances.lock(funded, Decimal("5000.01"))
    funded.refresh_from_db()
    assert (funded.balance, funded.locked) == (Decimal("5000"), Decimal("0"))


def test_release_refuses_to_go_negative(balances, funded):
    with pytest.raises(InsufficientBalance):
        balances.release(funded, Decimal("1"))
    funded.refresh_from_db()
    assert funded.locked == Decimal("0")


def test_get_holding_for_update_requires_row(balances, user, stake_asset):
    with pytest.raises(AssetNotFound):
        balances.get_holding_for_update(user.pk, "USDT")


def test_credit_records_deposit(balances, user, stake_asset):
    record = balances.credit(user.pk, "USDT", "750")
    assert record.type == "deposit"
    assert record.status == "completed"
    assert record.amount == Decimal("750")
    assert TX_ID_RE.match(record.tx_id)
    assert holding(user, "USDT").balance == Decimal("750")


@pytest.mark.parametrize("amount", ["0", "-5"])
def test_credit_rejects_non_positive(balances, user, stake_asset, amount):
    with pytest.raises(InvalidAmount):
        balances.credit(user.pk, "USDT", amount)
    assert not AssetTransaction.objects.exists()


def test_credit_unknown_asset_leaves_no_trail(balances, user):
    with pytest.raises(AssetNotFound):
        balances.credit(user.pk, "NOPE", "1")
    assert not AssetTransaction.objects.exists()


def test_credit_rejects_sub_unit_amount(balances, user, stake_asset):
    with pytest.raises(InvalidAmount):
        balances.credit(user.pk, "USDT", "0.0000000000000000005")
    assert holding(user, "USDT") is None
    assert not AssetTransaction.objects.exists()
