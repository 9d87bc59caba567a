from django.core.management.base import BaseCommand, CommandError

from backend.apps.assets.services.balances import BalanceMutator
from backend.apps.pool.exceptions import LedgerError
from backend.apps.users.models import ExchangeUser


class Command(BaseCommand):
    help = "Credit an asset to a user's available balance and record a deposit."

    def add_arguments(self, parser):
        parser.add_argument("username", help="Exchange username to credit.")
        parser.add_argument("symbol", help="Asset symbol, e.g. USDT.")
        parser.add_argument("amount", help="Quantity to credit (decimal string).")
        parser.add_argument(
            "--create-user",
            action="store_true",
            help="Create the exchange user if it does not exist yet.",
        )

    def handle(self, *args, **options):
        username = options["username"]
        try:
            user = ExchangeUser.objects.get(username=username)
        except ExchangeUser.DoesNotExist:
            if not options["create_user"]:
                raise CommandError(f"User '{username}' not found (use --create-user).")
            user = ExchangeUser.objects.create(username=username)
            self.stdout.write(self.style.WARNING(f"Created user {username}."))

        try:
            record = BalanceMutator().credit(user.pk, options["symbol"], options["amount"])
        except LedgerError as e:
            raise CommandError(str(e))

        self.stdout.write(
            self.style.SUCCESS(
                f"Credited {record.amount} {record.asset_symbol} to {user.display_name()} ({record.tx_id})"
            )
        )
