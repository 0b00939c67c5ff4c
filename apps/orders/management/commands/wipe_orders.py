from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from apps.common.config import FulfillmentConfig
from apps.common.exceptions import LedgerError
from apps.orders.services import wipe_orders


class Command(BaseCommand):
    help = "Deletes ALL orders with their items, status history, earnings and order stock adjustments."

    def add_arguments(self, parser):
        parser.add_argument("--confirm", dest="confirm", required=True, help="Confirmation phrase")
        parser.add_argument("--user", dest="user", default=None, help="Username recorded as the actor")

    def handle(self, *args, **options):
        actor = None
        if options.get("user"):
            User = get_user_model()
            actor = User.objects.filter(username=options["user"]).first()
            if actor is None:
                raise CommandError(f"Unknown user: {options['user']}")
        try:
            counts = wipe_orders(actor, options["confirm"], config=FulfillmentConfig.from_settings())
        except (LedgerError, ValueError) as e:
            raise CommandError(str(e))
        summary = ", ".join(f"{k}={v}" for k, v in counts.items())
        self.stdout.write(self.style.SUCCESS(f"Wiped: {summary}"))
