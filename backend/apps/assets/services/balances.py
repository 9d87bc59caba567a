"""
Balance mutations for user holdings.

All increments and decrements are issued as conditional ``UPDATE ... SET col = col + x``
statements so the database, not Python, does the arithmetic on the locked row.
Callers are expected to run these inside ``transaction.atomic``; the ledger engine
does, and ``credit`` opens its own block.
"""

import logging
from decimal import Decimal, InvalidOperation, localcontext

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from django.utils.crypto import get_random_string

from backend.apps.assets.models import AMOUNT_DIGITS, AMOUNT_PLACES, Asset, AssetTransaction, UserAsset
from backend.apps.pool.exceptions import AssetNotFound, InsufficientBalance, InvalidAmount

logger = logging.getLogger(__name__)

TX_ID_PREFIX = "tx_"
TX_ID_TIME_FORMAT = "%Y%m%d%H%M%S"
# Largest whole-number exponent that still fits the amount columns
MAX_AMOUNT_EXPONENT = AMOUNT_DIGITS - AMOUNT_PLACES - 1


def as_amount(value) -> Decimal:
    """
    Coerce user input to a Decimal quantity.

    Rejects non-numeric values and values the amount columns cannot store exactly:
    more than AMOUNT_PLACES fractional digits, or too many whole digits.
    """
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            # str() first so floats keep their printed value, not their binary one
            amount = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidAmount(f"invalid amount: {value!r}")
    if not amount.is_finite():
        raise InvalidAmount(f"invalid amount: {value!r}")
    with localcontext() as ctx:
        ctx.prec = AMOUNT_DIGITS * 2
        exponent = amount.normalize().as_tuple().exponent
    if amount != 0 and exponent < -AMOUNT_PLACES:
        raise InvalidAmount(f"amount {value} has more than {AMOUNT_PLACES} decimal places")
    if amount.adjusted() > MAX_AMOUNT_EXPONENT:
        raise InvalidAmount(f"amount {value} is too large")
    return amount


def generate_tx_id(now=None) -> str:
    """tx_<YYYYMMDDHHMMSS>_<random alnum>. Correlation id only; collisions are possible."""
    now = timezone.localtime(now or timezone.now())
    suffix = get_random_string(getattr(settings, "LAUNCHPOOL_TX_ID_SUFFIX_LENGTH", 8))
    return f"{TX_ID_PREFIX}{now.strftime(TX_ID_TIME_FORMAT)}_{suffix}"


class BalanceMutator:
    """Applies available/locked adjustments to UserAsset rows and writes trail entries."""

    def __init__(self, using: str = "default", now=None):
        self.using = using
        self.now = now or timezone.now

    def _holdings(self):
        return UserAsset.objects.using(self.using)

    def get_holding_for_update(self, user_id: int, symbol: str) -> UserAsset:
        """Lock and return the user's balance row for `symbol`."""
        # of=self: the joined Asset row is shared by every holder and stays unlocked
        holding = (
            self._holdings()
            .select_for_update(of=("self",))
            .filter(user_id=user_id, asset__symbol=symbol)
            .first()
        )
        if holding is None:
            raise AssetNotFound(f"asset {symbol} not found for user {user_id}")
        return holding

    def lock(self, holding: UserAsset, amount: Decimal) -> UserAsset:
        """Move `amount` from available to locked."""
        updated = (
            self._holdings()
            .filter(pk=holding.pk, balance__gte=amount)
            .update(
                balance=F("balance") - amount,
                locked=F("locked") + amount,
                updated_at=self.now(),
            )
        )
        if not updated:
            raise InsufficientBalance()
        holding.refresh_from_db(using=self.using, fields=["balance", "locked", "updated_at"])
        return holding

    def release(self, holding: UserAsset, amount: Decimal) -> UserAsset:
        """Move `amount` from locked back to available."""
        updated = (
            self._holdings()
            .filter(pk=holding.pk, locked__gte=amount)
            .update(
                balance=F("balance") + amount,
                locked=F("locked") - amount,
                updated_at=self.now(),
            )
        )
        if not updated:
            # Locked funds are out of step with the position; refuse rather than go negative
            raise InsufficientBalance(f"locked balance below {amount} on holding {holding.pk}")
        holding.refresh_from_db(using=self.using, fields=["balance", "locked", "updated_at"])
        return holding

    def distribute(self, user_id: int, symbol: str, amount: Decimal) -> UserAsset:
        """
        Credit `amount` to the user's available balance of `symbol`.

        Creates the balance row when the user has never held the asset. Writes no
        trail entry; the caller records one with the right type.
        """
        holding = (
            self._holdings()
            .select_for_update(of=("self",))
            .filter(user_id=user_id, asset__symbol=symbol)
            .first()
        )
        if holding is None:
            try:
                asset = Asset.objects.using(self.using).get(symbol=symbol)
            except Asset.DoesNotExist:
                raise AssetNotFound(f"asset {symbol} not found")

            holding, created = self._holdings().select_for_update().get_or_create(
                user_id=user_id,
                asset=asset,
                defaults={"balance": amount, "locked": Decimal("0")},
            )
            if created:
                logger.info(f"[Balance] Opened {symbol} holding for user {user_id} with {amount}")
                return holding

        self._holdings().filter(pk=holding.pk).update(
            balance=F("balance") + amount, updated_at=self.now()
        )
        holding.refresh_from_db(using=self.using, fields=["balance", "locked", "updated_at"])
        return holding

    def record_transaction(
        self,
        user_id: int,
        symbol: str,
        amount: Decimal,
        kind: str,
        status: str = "completed",
    ) -> AssetTransaction:
        record = AssetTransaction.objects.using(self.using).create(
            user_id=user_id,
            asset_symbol=symbol,
            amount=amount,
            type=kind,
            status=status,
            tx_id=generate_tx_id(self.now()),
        )
        logger.debug(f"[Trail] {record.tx_id} {kind} {amount} {symbol} user={user_id}")
        return record

    def credit(self, user_id: int, symbol: str, amount, kind: str = "deposit") -> AssetTransaction:
        """Fund a user's balance from outside the ledger and record it as a deposit."""
        amount = as_amount(amount)
        if amount <= 0:
            raise InvalidAmount()

        with transaction.atomic(using=self.using):
            self.distribute(user_id, symbol, amount)
            record = self.record_transaction(user_id, symbol, amount, kind)

        logger.info(f"[Deposit] Credited {amount} {symbol} to user {user_id} ({record.tx_id})")
        return record
