from django.core.management.base import BaseCommand

from apps.inventory.services import low_stock


class Command(BaseCommand):
    help = "Lists enabled stock rows at or under their low-stock threshold."

    def handle(self, *args, **options):
        rows = list(low_stock())
        if not rows:
            self.stdout.write(self.style.SUCCESS("No low stock."))
            return
        for stock in rows:
            self.stdout.write(
                f"{stock.product.name}\t{stock.current_stock}\t(threshold {stock.low_stock_threshold})"
            )
        self.stdout.write(self.style.WARNING(f"{len(rows)} product(s) low on stock"))
