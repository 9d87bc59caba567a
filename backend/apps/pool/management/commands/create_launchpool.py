from datetime import timedelta
from decimal import Decimal, InvalidOperation

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from backend.apps.assets.models import Asset
from backend.apps.pool.models import LaunchPool


def _parse_time(value, label):
    dt = parse_datetime(value)
    if dt is None:
        raise CommandError(f"Invalid {label} datetime: {value!r} (use ISO 8601).")
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt)
    return dt


class Command(BaseCommand):
    help = "Create a launch pool, registering its stake and reward assets if needed."

    def add_arguments(self, parser):
        parser.add_argument("--name", required=True)
        parser.add_argument("--stake-asset", dest="stake_asset", required=True)
        parser.add_argument("--reward-asset", dest="reward_asset", required=True)
        parser.add_argument("--apy", required=True, help="Annual yield as a fraction, e.g. 0.10")
        parser.add_argument("--start", help="ISO 8601 start time (defaults to now).")
        parser.add_argument("--end", help="ISO 8601 end time.")
        parser.add_argument("--days", type=int, help="Pool length in days when --end is omitted.")

    def handle(self, *args, **options):
        try:
            apy = Decimal(options["apy"])
        except InvalidOperation:
            raise CommandError(f"Invalid APY: {options['apy']!r}")
        if apy < 0:
            raise CommandError("APY cannot be negative.")

        start = _parse_time(options["start"], "start") if options["start"] else timezone.now()
        if options["end"]:
            end = _parse_time(options["end"], "end")
        elif options["days"]:
            end = start + timedelta(days=options["days"])
        else:
            raise CommandError("Provide --end or --days.")
        if end <= start:
            raise CommandError("Pool end must be after its start.")

        stake_symbol = options["stake_asset"].upper()
        reward_symbol = options["reward_asset"].upper()

        with transaction.atomic():
            for symbol in {stake_symbol, reward_symbol}:
                _, created = Asset.objects.get_or_create(symbol=symbol, defaults={"name": symbol})
                if created:
                    self.stdout.write(self.style.WARNING(f"Registered asset {symbol}."))

            pool = LaunchPool.objects.create(
                name=options["name"],
                stake_asset=stake_symbol,
                reward_asset=reward_symbol,
                start_time=start,
                end_time=end,
                apy=apy,
            )

        self.stdout.write(
            self.style.SUCCESS(
                f"Created pool #{pool.pk} {pool} from {start.isoformat()} to {end.isoformat()} at APY {apy}"
            )
        )
